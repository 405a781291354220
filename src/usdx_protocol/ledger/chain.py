"""
Chain — Хост домена (hub или spoke)

Домен исполняется как строго последовательная state machine:
- одна операция за раз, полный порядок (guard от повторного входа)
- каждый успешный вызов — новый блок с монотонным timestamp
- события буферизуются в транзакции и попадают в event log только при
  успешном завершении вызова

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Вложенная транзакция в том же домене → ReentrancyError
2. Исключение внутри транзакции → блок не создаётся, события отбрасываются
3. (block_number, log_index) строго возрастает в event log
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Protocol, Tuple

from usdx_protocol.core.domain.events import LogEntry, ProtocolEvent
from usdx_protocol.core.errors import ReentrancyError

logger = logging.getLogger(__name__)


# =============================================================================
# CLOCKS
# =============================================================================


class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Wall-clock (unix seconds)."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Управляемые часы для тестов и локальной сети."""

    def __init__(self, start: int = 1_700_000_000):
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"Cannot move clock backwards by {seconds}s")
        self._now += seconds
        return self._now


# =============================================================================
# CHAIN
# =============================================================================


@dataclass(frozen=True)
class ChainConfig:
    """Параметры домена."""

    chain_id: int
    name: str


class Transaction:
    """Открытая транзакция домена: блок, timestamp, буфер событий."""

    def __init__(self, chain_id: int, block_number: int, timestamp: int):
        self.chain_id = chain_id
        self.block_number = block_number
        self.timestamp = timestamp
        self._pending: List[Tuple[str, ProtocolEvent]] = []

    def emit(self, emitter: str, event: ProtocolEvent) -> None:
        self._pending.append((emitter, event))

    def _entries(self) -> List[LogEntry]:
        return [
            LogEntry(
                chain_id=self.chain_id,
                block_number=self.block_number,
                log_index=index,
                timestamp=self.timestamp,
                emitter=emitter,
                event=event,
            )
            for index, (emitter, event) in enumerate(self._pending)
        ]


class Chain:
    """
    Последовательный хост домена.

    Компоненты открывают транзакцию на каждом публичном мутирующем вызове;
    межкомпонентные вызовы внутри домена получают уже открытую транзакцию.
    """

    def __init__(self, config: ChainConfig, clock: Optional[Clock] = None):
        self.config = config
        self.clock = clock or SystemClock()
        self._block_number = 0
        self._block_timestamp = 0
        self._log: List[LogEntry] = []
        self._active: Optional[Transaction] = None

    @property
    def chain_id(self) -> int:
        return self.config.chain_id

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def block_number(self) -> int:
        return self._block_number

    @property
    def in_transaction(self) -> bool:
        return self._active is not None

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Открытие транзакции (новый блок).

        Raises:
            ReentrancyError: Если транзакция уже открыта
        """
        if self._active is not None:
            raise ReentrancyError(
                f"Chain {self.chain_id}: reentrant call into block {self._active.block_number}"
            )

        # timestamp блока не убывает даже если часы отстали
        timestamp = max(self.clock.now(), self._block_timestamp)
        tx = Transaction(self.chain_id, self._block_number + 1, timestamp)
        self._active = tx
        try:
            yield tx
        finally:
            self._active = None

        entries = tx._entries()
        self._block_number = tx.block_number
        self._block_timestamp = tx.timestamp
        self._log.extend(entries)
        logger.debug(
            "Chain %s: block %d committed with %d event(s)",
            self.chain_id,
            tx.block_number,
            len(entries),
        )

    def get_logs(self, after: Optional[Tuple[int, int]] = None) -> List[LogEntry]:
        """
        Записи event log строго после позиции after=(block_number, log_index).

        Args:
            after: Курсор последней обработанной записи (None — с начала)
        """
        if after is None:
            return list(self._log)
        return [entry for entry in self._log if entry.position > after]
