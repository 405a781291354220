"""
TokenLedger — Балансы токена в одном домене

Один экземпляр на токен и домен (hub USDC, hub USDX, spoke USDX).
mint/burn разрешены только ролям из таблицы авторизации
(MINTER/VAULT/BRIDGE для mint, BURNER/VAULT/BRIDGE для burn).

Методы *_in(tx, ...) выполняются внутри уже открытой транзакции домена
и используются другими компонентами (vault, minter, bridge); публичные
mint/burn/transfer открывают собственную транзакцию.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. total_supply == Σ balances
2. Баланс никогда не становится отрицательным
"""

import logging
from typing import Dict

from usdx_protocol.core.domain.roles import Operation
from usdx_protocol.core.domain.units import validate_address, validate_amount
from usdx_protocol.core.errors import InsufficientBalanceError
from usdx_protocol.ledger.access import RoleRegistry
from usdx_protocol.ledger.chain import Chain, Transaction

logger = logging.getLogger(__name__)


class TokenLedger:
    """Ledger одного токена в одном домене."""

    def __init__(self, chain: Chain, symbol: str, decimals: int, admin: str, address: str):
        self._chain = chain
        self.symbol = symbol
        self.decimals = decimals
        self.address = address
        self.roles = RoleRegistry(chain, address, admin)
        self._balances: Dict[str, int] = {}
        self._total_supply = 0

    @property
    def chain_id(self) -> int:
        return self._chain.chain_id

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def balances(self) -> Dict[str, int]:
        return {account: bal for account, bal in self._balances.items() if bal}

    def require_balance(self, account: str, amount: int) -> None:
        """
        Raises:
            InsufficientBalanceError: Если баланс account < amount
        """
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalanceError(
                f"{self.symbol}@{self.chain_id}: {account} balance {balance} < {amount}"
            )

    # -------------------------------------------------------------------------
    # Публичные операции (собственная транзакция)
    # -------------------------------------------------------------------------

    def mint(self, caller: str, to: str, amount: int) -> None:
        with self._chain.transaction() as tx:
            self.mint_in(tx, caller, to, amount)

    def burn(self, caller: str, account: str, amount: int) -> None:
        with self._chain.transaction() as tx:
            self.burn_in(tx, caller, account, amount)

    def transfer(self, sender: str, to: str, amount: int) -> None:
        with self._chain.transaction() as tx:
            self.transfer_in(tx, sender, to, amount)

    # -------------------------------------------------------------------------
    # Операции внутри открытой транзакции
    # -------------------------------------------------------------------------

    def mint_in(self, tx: Transaction, caller: str, to: str, amount: int) -> None:
        self.roles.require(caller, Operation.MINT)
        validate_address(to)
        validate_amount(amount)

        self._balances[to] = self.balance_of(to) + amount
        self._total_supply += amount
        logger.debug("%s@%s: mint %d to %s by %s", self.symbol, tx.chain_id, amount, to, caller)

    def burn_in(self, tx: Transaction, caller: str, account: str, amount: int) -> None:
        self.roles.require(caller, Operation.BURN)
        validate_amount(amount)
        self.require_balance(account, amount)

        self._balances[account] -= amount
        self._total_supply -= amount
        logger.debug("%s@%s: burn %d from %s by %s", self.symbol, tx.chain_id, amount, account, caller)

    def transfer_in(self, tx: Transaction, sender: str, to: str, amount: int) -> None:
        validate_address(to)
        validate_amount(amount)
        self.require_balance(sender, amount)

        self._balances[sender] -= amount
        self._balances[to] = self.balance_of(to) + amount
        logger.debug("%s@%s: transfer %d %s -> %s", self.symbol, tx.chain_id, amount, sender, to)
