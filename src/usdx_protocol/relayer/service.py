"""
PositionRelayer — Доставка событий между hub и spoke доменами

Цикл опроса по каждому домену:
1. get_logs(после курсора) → JSON payload записей
2. Валидация JSON Schema (конверт + событие) → LogEntry
3. Обработчик по классу события
4. Сохранение курсора в SQLite (только после успешной обработки)

Обработчики:
- Deposited / Withdrawn (hub) → свежий snapshot позиции → update_hub_position на всех spoke
- MintRequested (spoke) → snapshot → mint_from_hub_position с derive_request_mint_id
- TransferInitiated (любой домен) → complete_transfer на destination →
  acknowledge_completion на source

Классификация ошибок целевого ledger:
- StateConflictError (DuplicateMint, DuplicateCompletion) → уже применено, курсор сдвигается
- InsufficientHubPosition на MintRequested → запрос отклонён, курсор сдвигается
- ExternalDependencyError → ретраи с backoff, затем курсор домена стоит до следующего опроса
- остальное → fatal, исключение пробрасывается из run()

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Курсор не сдвигается за событие, обработка которого не завершена
2. Каждый мутирующий вызов несёт idempotency key (mintId / transferId / hub_block)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Type, Union

from usdx_protocol.core.contracts import validate_log_entry, validate_position_snapshot
from usdx_protocol.core.domain.events import (
    Deposited,
    LogEntry,
    MintRequested,
    TransferInitiated,
    Withdrawn,
)
from usdx_protocol.core.domain.ids import derive_request_mint_id
from usdx_protocol.core.errors import (
    ExternalDependencyError,
    InsufficientHubPosition,
    StateConflictError,
    UnsupportedChain,
)
from usdx_protocol.relayer.checkpoint import Checkpoint, SQLiteCheckpointStore
from usdx_protocol.relayer.clients import DomainClient, Payload
from usdx_protocol.relayer.config import RelayerConfig
from usdx_protocol.relayer.retry import BackoffPolicy, call_with_retry

logger = logging.getLogger(__name__)

Handler = Callable[[LogEntry, Any], Awaitable[None]]


class PositionRelayer:
    """Relayer между hub и spoke доменами."""

    def __init__(
        self,
        config: RelayerConfig,
        hub: DomainClient,
        spokes: Mapping[int, DomainClient],
        store: SQLiteCheckpointStore,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self._hub = hub
        self._spokes = dict(spokes)
        self._clients: Dict[int, DomainClient] = {hub.chain_id: hub, **self._spokes}
        self._store = store
        self._sleep = sleep
        self._policy = BackoffPolicy(
            max_retries=config.max_retries,
            base_delay_sec=config.backoff_base_sec,
            max_delay_sec=config.backoff_max_sec,
        )
        self._cursors: Dict[int, Optional[Tuple[int, int]]] = {}
        self._started = False
        self._stop = asyncio.Event()

        self._handlers: Dict[Type[Any], Handler] = {
            Deposited: self._on_position_changed,
            Withdrawn: self._on_position_changed,
            MintRequested: self._on_mint_requested,
            TransferInitiated: self._on_transfer_initiated,
        }

    @property
    def cursors(self) -> Dict[int, Optional[Tuple[int, int]]]:
        return dict(self._cursors)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Инициализация SQLite и загрузка курсоров."""
        await self._store.init()
        saved = await self._store.load_all()
        for chain_id in self._clients:
            checkpoint = saved.get(chain_id)
            self._cursors[chain_id] = checkpoint.position if checkpoint else None
        self._started = True
        logger.info(
            "Relayer started: hub=%s spokes=%s cursors=%s",
            self._hub.chain_id,
            list(self._spokes),
            self._cursors,
        )

    def stop(self) -> None:
        logger.info("Stop requested")
        self._stop.set()

    async def run(self) -> None:
        """
        Основной цикл: опрос доменов + heartbeat.

        Raises:
            Exception: Любая неклассифицированная ошибка (fatal)
        """
        if not self._started:
            await self.start()
        heartbeat = asyncio.create_task(self._heartbeat_loop())
        try:
            while not self._stop.is_set():
                await self.poll_once()
                await self._wait_stop(self.config.poll_interval_sec)
        finally:
            heartbeat.cancel()
            try:
                await heartbeat
            except asyncio.CancelledError:
                pass
            logger.info("Relayer loop finished")

    async def _wait_stop(self, timeout: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass

    async def _heartbeat_loop(self) -> None:
        while not self._stop.is_set():
            await self.heartbeat_once()
            await self._wait_stop(self.config.heartbeat_interval_sec)

    async def heartbeat_once(self) -> Dict[int, Optional[int]]:
        """Лог высоты блока каждого домена."""
        heights: Dict[int, Optional[int]] = {}
        for chain_id, client in self._clients.items():
            try:
                heights[chain_id] = await client.get_block_number()
            except ExternalDependencyError as exc:
                logger.warning("Heartbeat: chain %s unavailable (%s)", chain_id, exc)
                heights[chain_id] = None
        logger.info(
            "Heartbeat - %s",
            ", ".join(
                f"{'hub' if chain_id == self._hub.chain_id else 'spoke'} {chain_id}: block {height}"
                for chain_id, height in heights.items()
            ),
        )
        return heights

    # =========================================================================
    # POLLING
    # =========================================================================

    async def poll_once(self) -> int:
        """
        Один проход по всем доменам.

        Returns:
            Число событий, за которые сдвинут курсор
        """
        if not self._started:
            await self.start()
        processed = 0
        for chain_id in list(self._clients):
            processed += await self._poll_chain(chain_id)
        return processed

    async def _poll_chain(self, chain_id: int) -> int:
        client = self._clients[chain_id]
        cursor = self._cursors.get(chain_id)
        try:
            payloads = await self._call(lambda: client.get_logs(cursor), f"get_logs@{chain_id}")
        except ExternalDependencyError as exc:
            logger.warning("Chain %s: logs unavailable, retry next poll (%s)", chain_id, exc)
            return 0

        processed = 0
        for payload in payloads:
            validate_log_entry(payload)
            entry = LogEntry.model_validate(payload)
            try:
                await self._dispatch(entry)
            except ExternalDependencyError as exc:
                logger.warning(
                    "Chain %s: event at %s not delivered, cursor held (%s)",
                    chain_id,
                    entry.position,
                    exc,
                )
                break
            await self._store.save(Checkpoint(chain_id, entry.block_number, entry.log_index))
            self._cursors[chain_id] = entry.position
            processed += 1
        return processed

    async def _dispatch(self, entry: LogEntry) -> None:
        handler = self._handlers.get(type(entry.event))
        if handler is None:
            return
        logger.debug(
            "Chain %s: handling %s at %s", entry.chain_id, entry.event.kind, entry.position
        )
        await handler(entry, entry.event)

    async def _call(self, operation: Callable[[], Awaitable[Any]], description: str) -> Any:
        return await call_with_retry(operation, self._policy, description, self._sleep)

    async def _apply(self, operation: Callable[[], Awaitable[Any]], description: str) -> bool:
        """
        Мутирующий вызов целевого ledger.

        Returns:
            True если применён, False если уже был применён ранее
        """
        try:
            await self._call(operation, description)
        except StateConflictError as exc:
            logger.info("%s already applied (%s)", description, exc.reason)
            return False
        return True

    async def _hub_snapshot(self, user: str) -> Payload:
        snapshot = await self._call(
            lambda: self._hub.get_user_position_snapshot(user), f"snapshot({user})"
        )
        validate_position_snapshot(snapshot)
        return snapshot

    # =========================================================================
    # HANDLERS
    # =========================================================================

    async def _on_position_changed(
        self, entry: LogEntry, event: Union[Deposited, Withdrawn]
    ) -> None:
        if entry.chain_id != self._hub.chain_id:
            return
        snapshot = await self._hub_snapshot(event.user)
        for spoke_id, spoke in self._spokes.items():
            updated = await self._call(
                lambda: spoke.update_hub_position(
                    self.config.relayer_address,
                    event.user,
                    snapshot["position"],
                    snapshot["hub_block"],
                ),
                f"update_hub_position@{spoke_id}",
            )
            logger.info(
                "%s of %s: position %d synced to spoke %s (hub block %d, updated=%s)",
                event.kind,
                event.user,
                snapshot["position"],
                spoke_id,
                snapshot["hub_block"],
                updated,
            )

    async def _on_mint_requested(self, entry: LogEntry, event: MintRequested) -> None:
        spoke = self._spokes.get(entry.chain_id)
        if spoke is None:
            return
        mint_id = derive_request_mint_id(entry.chain_id, event.request_id)
        snapshot = await self._hub_snapshot(event.user)
        try:
            applied = await self._apply(
                lambda: spoke.mint_from_hub_position(
                    self.config.relayer_address,
                    event.user,
                    event.amount,
                    snapshot["position"],
                    mint_id,
                ),
                f"mint_from_hub_position@{entry.chain_id}#{event.request_id}",
            )
        except InsufficientHubPosition as exc:
            logger.warning(
                "Mint request #%d of %s on spoke %s rejected: %s",
                event.request_id,
                event.user,
                entry.chain_id,
                exc,
            )
            return
        if applied:
            logger.info(
                "Mint request #%d: %d minted to %s on spoke %s",
                event.request_id,
                event.amount,
                event.user,
                entry.chain_id,
            )

    async def _on_transfer_initiated(self, entry: LogEntry, event: TransferInitiated) -> None:
        destination = self._clients.get(event.dest_chain_id)
        if destination is None:
            raise UnsupportedChain(
                f"Transfer {event.transfer_id}: no client for destination chain {event.dest_chain_id}"
            )
        source = self._clients[entry.chain_id]

        completed = await self._apply(
            lambda: destination.complete_transfer(
                self.config.relayer_address,
                event.transfer_id,
                event.source_chain_id,
                event.sender,
                event.amount,
                event.recipient,
            ),
            f"complete_transfer@{event.dest_chain_id}",
        )
        await self._apply(
            lambda: source.acknowledge_completion(self.config.relayer_address, event.transfer_id),
            f"acknowledge_completion@{entry.chain_id}",
        )
        logger.info(
            "Transfer %s: %d from chain %s to chain %s (%s)",
            event.transfer_id,
            event.amount,
            event.source_chain_id,
            event.dest_chain_id,
            "completed" if completed else "already completed",
        )
