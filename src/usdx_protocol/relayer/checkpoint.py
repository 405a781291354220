"""
Checkpoint — Durable курсор relayer по каждому домену (SQLite)

Курсор (block_number, log_index) последней полностью обработанной записи
event log. Записывается ПОСЛЕ успешной обработки события: падение между
вызовом целевого ledger и записью курсора приводит к повторной доставке,
которую поглощает idempotency key.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Курсор монотонен: save() не откатывает сохранённую позицию назад
2. При рестарте курсор читается из SQLite, а не из памяти
3. Курсоры изолированы по namespace: один файл БД может обслуживать
   несколько экземпляров сети (chain id у них совпадают, логи нет)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS relayer_checkpoints (
  namespace TEXT NOT NULL,
  chain_id INTEGER NOT NULL,
  block_number INTEGER NOT NULL,
  log_index INTEGER NOT NULL,
  updated_at TEXT DEFAULT (datetime('now')),
  PRIMARY KEY (namespace, chain_id)
);
"""


@dataclass(frozen=True)
class Checkpoint:
    chain_id: int
    block_number: int
    log_index: int

    @property
    def position(self) -> Tuple[int, int]:
        return (self.block_number, self.log_index)


class SQLiteCheckpointStore:
    def __init__(self, path: str, namespace: str = "default"):
        self.path = path
        self.namespace = namespace

    async def init(self) -> None:
        async with aiosqlite.connect(self.path) as conn:
            await conn.executescript(SCHEMA_SQL)
            await conn.commit()

    @asynccontextmanager
    async def connect(self):
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = aiosqlite.Row
        try:
            yield conn
        finally:
            await conn.close()

    async def load(self, chain_id: int) -> Optional[Checkpoint]:
        async with self.connect() as conn:
            cur = await conn.execute(
                "SELECT chain_id, block_number, log_index FROM relayer_checkpoints "
                "WHERE namespace=? AND chain_id=?",
                (self.namespace, chain_id),
            )
            row = await cur.fetchone()
        if not row:
            return None
        return Checkpoint(
            chain_id=int(row["chain_id"]),
            block_number=int(row["block_number"]),
            log_index=int(row["log_index"]),
        )

    async def load_all(self) -> Dict[int, Checkpoint]:
        async with self.connect() as conn:
            cur = await conn.execute(
                "SELECT chain_id, block_number, log_index FROM relayer_checkpoints "
                "WHERE namespace=? ORDER BY chain_id",
                (self.namespace,),
            )
            rows = await cur.fetchall()
        return {
            int(row["chain_id"]): Checkpoint(
                chain_id=int(row["chain_id"]),
                block_number=int(row["block_number"]),
                log_index=int(row["log_index"]),
            )
            for row in rows
        }

    async def save(self, checkpoint: Checkpoint) -> bool:
        """
        Сохранение курсора (только вперёд).

        Returns:
            True если курсор сдвинут, False если сохранённый не младше
        """
        async with self.connect() as conn:
            cur = await conn.execute(
                """
                INSERT INTO relayer_checkpoints(namespace, chain_id, block_number, log_index)
                VALUES(?, ?, ?, ?)
                ON CONFLICT(namespace, chain_id) DO UPDATE SET
                  block_number=excluded.block_number,
                  log_index=excluded.log_index,
                  updated_at=datetime('now')
                WHERE (excluded.block_number, excluded.log_index)
                      > (relayer_checkpoints.block_number, relayer_checkpoints.log_index)
                """,
                (self.namespace, checkpoint.chain_id, checkpoint.block_number, checkpoint.log_index),
            )
            await conn.commit()
            advanced = cur.rowcount == 1
        if advanced:
            logger.debug(
                "Checkpoint %s chain %s -> (%d, %d)",
                self.namespace,
                checkpoint.chain_id,
                checkpoint.block_number,
                checkpoint.log_index,
            )
        return advanced
