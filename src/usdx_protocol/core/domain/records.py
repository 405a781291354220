"""
Records — Write-once записи spoke minter и bridge

- MintRecord: применённый mintId (spoke)
- TransferRecord: bridge transfer со state machine Pending → Completed
- AttestedHubPosition: последняя позиция hub, доставленная relayer на spoke
- MintRequest: пользовательский запрос на mint, исполняемый relayer

Переход TransferRecord.completed() — чистая функция: возвращает новую
запись или бросает DuplicateCompletion, обратного ребра нет.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from usdx_protocol.core.errors import DuplicateCompletion


# =============================================================================
# ENUMS
# =============================================================================


class TransferStatus(str, Enum):
    """Статус bridge transfer (Completed — терминальный)."""

    PENDING = "Pending"
    COMPLETED = "Completed"


# =============================================================================
# SPOKE
# =============================================================================


class MintRecord(BaseModel):
    """Применённый mint на spoke, ключ — mintId."""

    mint_id: str = Field(..., min_length=1)
    user: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    hub_position_snapshot: int = Field(..., ge=0, description="Attested позиция hub на момент mint")
    timestamp: int = Field(..., ge=0)

    model_config = {"frozen": True}


class AttestedHubPosition(BaseModel):
    """Позиция пользователя на hub, подтверждённая relayer."""

    user: str = Field(..., min_length=1)
    position: int = Field(..., ge=0)
    hub_block: int = Field(..., ge=0, description="Блок hub, на котором снят snapshot")
    updated_at: int = Field(..., ge=0)

    model_config = {"frozen": True}


class MintRequest(BaseModel):
    """Запрос пользователя на mint на spoke."""

    request_id: int = Field(..., ge=1)
    user: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    created_at: int = Field(..., ge=0)

    model_config = {"frozen": True}


# =============================================================================
# BRIDGE
# =============================================================================


class TransferRecord(BaseModel):
    """
    Запись bridge transfer.

    На source-домене создаётся Pending при burn; на destination-домене
    создаётся сразу Completed при mint. Никогда не удаляется.
    """

    transfer_id: str = Field(..., pattern=r"^0x[0-9a-f]{64}$")
    status: TransferStatus
    source_chain_id: int = Field(..., ge=1)
    dest_chain_id: int = Field(..., ge=1)
    sender: str = Field(..., min_length=1)
    recipient: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    nonce: Optional[int] = Field(None, ge=0, description="Nonce source-менеджера (None на destination)")
    created_at: int = Field(..., ge=0)
    completed_at: Optional[int] = Field(None, ge=0)

    model_config = {"frozen": True}

    @property
    def is_pending(self) -> bool:
        return self.status == TransferStatus.PENDING

    def completed(self, timestamp: int) -> "TransferRecord":
        """
        Переход Pending → Completed.

        Raises:
            DuplicateCompletion: Если запись уже Completed
        """
        if self.status == TransferStatus.COMPLETED:
            raise DuplicateCompletion(f"Transfer {self.transfer_id} already completed")
        return self.model_copy(
            update={"status": TransferStatus.COMPLETED, "completed_at": timestamp}
        )
