"""
Relayer Config — Конфигурация PositionRelayer из окружения

Переменные (читаются после load_dotenv()):
    USDX_HUB_CHAIN_ID            chain id hub (1)
    USDX_SPOKE_CHAIN_IDS         chain id spoke через запятую ("137")
    USDX_RELAYER_ADDRESS         аккаунт relayer ("relayer")
    USDX_POLL_INTERVAL_SEC       период опроса event log (2.0)
    USDX_HEARTBEAT_INTERVAL_SEC  период heartbeat (30.0)
    USDX_CHECKPOINT_DB           путь к SQLite checkpoint ("relayer_checkpoint.db")
    USDX_MAX_RETRIES             число ретраев RPC (5)
    USDX_BACKOFF_BASE_SEC        базовая задержка backoff (0.5)
    USDX_BACKOFF_MAX_SEC         максимальная задержка backoff (30.0)
"""

import logging
import os
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)


class RelayerConfig(BaseModel):
    """Параметры relayer."""

    hub_chain_id: int = Field(1, ge=1)
    spoke_chain_ids: Tuple[int, ...] = Field((137,), min_length=1)
    relayer_address: str = Field("relayer", min_length=1)
    poll_interval_sec: float = Field(2.0, gt=0)
    heartbeat_interval_sec: float = Field(30.0, gt=0)
    checkpoint_db: str = Field("relayer_checkpoint.db", min_length=1)
    max_retries: int = Field(5, ge=0)
    backoff_base_sec: float = Field(0.5, ge=0)
    backoff_max_sec: float = Field(30.0, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_chains(self) -> "RelayerConfig":
        if self.hub_chain_id in self.spoke_chain_ids:
            raise ValueError(f"hub chain {self.hub_chain_id} listed among spokes")
        if len(set(self.spoke_chain_ids)) != len(self.spoke_chain_ids):
            raise ValueError(f"duplicate spoke chain ids: {self.spoke_chain_ids}")
        if self.backoff_max_sec < self.backoff_base_sec:
            raise ValueError("backoff_max_sec must be >= backoff_base_sec")
        return self


def _parse_chain_ids(raw: str) -> Tuple[int, ...]:
    return tuple(int(part.strip()) for part in raw.split(",") if part.strip())


def load_relayer_config(env: Optional[Mapping[str, str]] = None) -> RelayerConfig:
    """
    Чтение конфигурации из окружения.

    Raises:
        pydantic.ValidationError / ValueError: Невалидные значения
    """
    env = os.environ if env is None else env
    config = RelayerConfig(
        hub_chain_id=int(env.get("USDX_HUB_CHAIN_ID", "1")),
        spoke_chain_ids=_parse_chain_ids(env.get("USDX_SPOKE_CHAIN_IDS", "137")),
        relayer_address=env.get("USDX_RELAYER_ADDRESS", "relayer").strip(),
        poll_interval_sec=float(env.get("USDX_POLL_INTERVAL_SEC", "2.0")),
        heartbeat_interval_sec=float(env.get("USDX_HEARTBEAT_INTERVAL_SEC", "30.0")),
        checkpoint_db=env.get("USDX_CHECKPOINT_DB", "relayer_checkpoint.db").strip(),
        max_retries=int(env.get("USDX_MAX_RETRIES", "5")),
        backoff_base_sec=float(env.get("USDX_BACKOFF_BASE_SEC", "0.5")),
        backoff_max_sec=float(env.get("USDX_BACKOFF_MAX_SEC", "30.0")),
    )
    logger.info(
        "Config loaded: hub=%s, spokes=%s, relayer=%s, poll=%ss, heartbeat=%ss, checkpoint_db=%s",
        config.hub_chain_id,
        ",".join(str(c) for c in config.spoke_chain_ids),
        config.relayer_address,
        config.poll_interval_sec,
        config.heartbeat_interval_sec,
        config.checkpoint_db,
    )
    return config
