"""
BridgeTransferManager — Перенос USDX между доменами (burn → mint)

Source-домен:
- transfer_cross_chain: burn у отправителя, Pending запись, TransferInitiated
- acknowledge_completion: Pending → Completed после mint на destination

Destination-домен:
- complete_transfer (RELAYER): mint получателю, запись сразу Completed

transferId = Hash(sourceChainId, destChainId, sender, recipient, amount,
nonce, blockTimestamp); relayer читает его из события, а не вычисляет.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. transferId завершается не более одного раза (DuplicateCompletion)
2. Completed — терминальный статус, записи не удаляются
3. Для Completed transfer: supply source −amount, supply destination +amount
"""

import logging
import re
from typing import List, Optional, Set

from usdx_protocol.core.domain.events import (
    SupportedChainSet,
    TransferAcknowledged,
    TransferCompleted,
    TransferInitiated,
)
from usdx_protocol.core.domain.ids import compute_transfer_id
from usdx_protocol.core.domain.records import TransferRecord, TransferStatus
from usdx_protocol.core.domain.roles import Operation
from usdx_protocol.core.domain.units import validate_address, validate_amount
from usdx_protocol.core.errors import DuplicateCompletion, UnsupportedChain, ValidationError
from usdx_protocol.ledger.access import RoleRegistry
from usdx_protocol.ledger.chain import Chain
from usdx_protocol.ledger.store import KeyedStore
from usdx_protocol.ledger.token import TokenLedger

logger = logging.getLogger(__name__)

_TRANSFER_ID_RE = re.compile(r"^0x[0-9a-f]{64}$")


def _validate_transfer_id(transfer_id: str) -> str:
    if not isinstance(transfer_id, str) or not _TRANSFER_ID_RE.match(transfer_id):
        raise ValidationError(f"Invalid transfer id: {transfer_id!r}", "invalid_transfer_id")
    return transfer_id


class BridgeTransferManager:
    """Bridge одного домена."""

    def __init__(self, chain: Chain, token: TokenLedger, admin: str, address: str = "bridge"):
        self._chain = chain
        self.token = token
        self.address = address
        self.roles = RoleRegistry(chain, address, admin)

        self._supported: Set[int] = set()
        self._transfers: KeyedStore[str, TransferRecord] = KeyedStore("transfers")
        self._nonce = 0

    @property
    def chain_id(self) -> int:
        return self._chain.chain_id

    @property
    def transfer_nonce(self) -> int:
        """Nonce следующего исходящего transfer."""
        return self._nonce

    # =========================================================================
    # ADMIN
    # =========================================================================

    def set_supported_chain(self, caller: str, chain_id: int, supported: bool) -> bool:
        """
        Регистрация/снятие сети-контрагента.

        Returns:
            True если состояние изменилось
        """
        with self._chain.transaction() as tx:
            self.roles.require(caller, Operation.SET_SUPPORTED_CHAIN)
            if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
                raise ValidationError(f"Invalid chain id: {chain_id!r}", "invalid_chain_id")
            if (chain_id in self._supported) == supported:
                return False
            if supported:
                self._supported.add(chain_id)
            else:
                self._supported.discard(chain_id)
            tx.emit(self.address, SupportedChainSet(chain_id=chain_id, supported=supported))

        logger.info("Bridge %s: chain %d supported=%s", self.chain_id, chain_id, supported)
        return True

    # =========================================================================
    # SOURCE SIDE
    # =========================================================================

    def transfer_cross_chain(
        self, sender: str, amount: int, dest_chain_id: int, recipient: str
    ) -> TransferRecord:
        """
        Burn на source-домене и создание Pending записи.

        Raises:
            ValidationError: amount <= 0
            UnsupportedChain: dest_chain_id не зарегистрирован или равен локальному
            InsufficientBalanceError: баланс отправителя < amount
        """
        with self._chain.transaction() as tx:
            validate_address(sender)
            validate_address(recipient)
            validate_amount(amount)
            if dest_chain_id == tx.chain_id or dest_chain_id not in self._supported:
                raise UnsupportedChain(
                    f"Bridge {tx.chain_id}: destination chain {dest_chain_id} is not supported"
                )
            self.token.require_balance(sender, amount)
            self.token.roles.require(self.address, Operation.BURN)

            nonce = self._nonce
            transfer_id = compute_transfer_id(
                tx.chain_id, dest_chain_id, sender, recipient, amount, nonce, tx.timestamp
            )
            record = TransferRecord(
                transfer_id=transfer_id,
                status=TransferStatus.PENDING,
                source_chain_id=tx.chain_id,
                dest_chain_id=dest_chain_id,
                sender=sender,
                recipient=recipient,
                amount=amount,
                nonce=nonce,
                created_at=tx.timestamp,
            )
            self._transfers.insert(transfer_id, record)
            self._nonce = nonce + 1
            self.token.burn_in(tx, self.address, sender, amount)

            tx.emit(
                self.address,
                TransferInitiated(
                    transfer_id=transfer_id,
                    sender=sender,
                    amount=amount,
                    source_chain_id=tx.chain_id,
                    dest_chain_id=dest_chain_id,
                    recipient=recipient,
                ),
            )

        logger.info(
            "Bridge %s: transfer %s initiated (%d -> chain %d, nonce=%d)",
            tx.chain_id,
            transfer_id,
            amount,
            dest_chain_id,
            nonce,
        )
        return record

    initiate_transfer = transfer_cross_chain

    def acknowledge_completion(self, caller: str, transfer_id: str) -> TransferRecord:
        """
        Перевод source-записи Pending → Completed.

        Raises:
            DuplicateCompletion: запись уже Completed
        """
        with self._chain.transaction() as tx:
            self.roles.require(caller, Operation.ACKNOWLEDGE_COMPLETION)
            _validate_transfer_id(transfer_id)
            existing = self._transfers.get(transfer_id)
            if existing is None:
                raise ValidationError(
                    f"Bridge {tx.chain_id}: unknown transfer {transfer_id}", "unknown_transfer"
                )

            updated = existing.completed(tx.timestamp)
            self._transfers.replace(transfer_id, updated)
            tx.emit(self.address, TransferAcknowledged(transfer_id=transfer_id, timestamp=tx.timestamp))

        logger.info("Bridge %s: transfer %s acknowledged", tx.chain_id, transfer_id)
        return updated

    # =========================================================================
    # DESTINATION SIDE
    # =========================================================================

    def complete_transfer(
        self,
        caller: str,
        transfer_id: str,
        source_chain_id: int,
        original_sender: str,
        amount: int,
        recipient: str,
    ) -> TransferRecord:
        """
        Mint на destination-домене по наблюдённому TransferInitiated.

        Raises:
            Unauthorized: caller без роли RELAYER
            DuplicateCompletion: transfer_id уже завершён
            UnsupportedChain: source_chain_id не зарегистрирован
        """
        with self._chain.transaction() as tx:
            self.roles.require(caller, Operation.COMPLETE_TRANSFER)
            _validate_transfer_id(transfer_id)
            validate_address(original_sender)
            validate_address(recipient)
            validate_amount(amount)
            if transfer_id in self._transfers:
                raise DuplicateCompletion(
                    f"Bridge {tx.chain_id}: transfer {transfer_id} already completed"
                )
            if source_chain_id == tx.chain_id or source_chain_id not in self._supported:
                raise UnsupportedChain(
                    f"Bridge {tx.chain_id}: source chain {source_chain_id} is not supported"
                )
            self.token.roles.require(self.address, Operation.MINT)

            record = TransferRecord(
                transfer_id=transfer_id,
                status=TransferStatus.COMPLETED,
                source_chain_id=source_chain_id,
                dest_chain_id=tx.chain_id,
                sender=original_sender,
                recipient=recipient,
                amount=amount,
                created_at=tx.timestamp,
                completed_at=tx.timestamp,
            )
            self._transfers.insert(transfer_id, record)
            self.token.mint_in(tx, self.address, recipient, amount)

            tx.emit(
                self.address,
                TransferCompleted(
                    transfer_id=transfer_id,
                    recipient=recipient,
                    amount=amount,
                    source_chain_id=source_chain_id,
                    timestamp=tx.timestamp,
                ),
            )

        logger.info(
            "Bridge %s: transfer %s completed (%d to %s from chain %d)",
            tx.chain_id,
            transfer_id,
            amount,
            recipient,
            source_chain_id,
        )
        return record

    # =========================================================================
    # QUERIES
    # =========================================================================

    def is_supported_chain(self, chain_id: int) -> bool:
        return chain_id in self._supported

    def supported_chains(self) -> List[int]:
        return sorted(self._supported)

    def get_transfer(self, transfer_id: str) -> Optional[TransferRecord]:
        return self._transfers.get(transfer_id)

    def get_pending_transfer(self, transfer_id: str) -> Optional[TransferRecord]:
        record = self._transfers.get(transfer_id)
        if record is None or not record.is_pending:
            return None
        return record

    def pending_transfers(self) -> List[TransferRecord]:
        """Незавершённые исходящие transfer (для операторов: возврата средств нет)."""
        return sorted(
            (record for record in self._transfers.values() if record.is_pending),
            key=lambda record: record.nonce or 0,
        )
