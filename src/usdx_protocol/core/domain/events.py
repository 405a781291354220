"""
Events — События доменов и запись event log

Каждый успешный вызов ledger-компонента публикует события в append-only
event log своего домена. Relayer читает только event log (никакой общей
памяти между доменами).

LogEntry — конверт события: (chain_id, block_number, log_index) задаёт
полный порядок внутри домена и служит курсором relayer.
"""

from typing import Annotated, Any, Dict, Literal, Tuple, Union

from pydantic import BaseModel, Field


class _Event(BaseModel):
    model_config = {"frozen": True}


# =============================================================================
# HUB
# =============================================================================


class Deposited(_Event):
    kind: Literal["Deposited"] = "Deposited"
    user: str
    usdc_amount: int = Field(..., gt=0)
    usdx_amount: int = Field(..., gt=0)


class Withdrawn(_Event):
    kind: Literal["Withdrawn"] = "Withdrawn"
    user: str
    usdc_amount: int = Field(..., ge=0, description="Выплата USDC (с доходностью)")
    usdx_amount: int = Field(..., gt=0, description="Сожжённые USDX")


# =============================================================================
# SPOKE
# =============================================================================


class MintFromPosition(_Event):
    kind: Literal["MintFromPosition"] = "MintFromPosition"
    user: str
    amount: int = Field(..., gt=0)
    hub_position: int = Field(..., ge=0)
    mint_id: str


class HubPositionUpdated(_Event):
    kind: Literal["HubPositionUpdated"] = "HubPositionUpdated"
    user: str
    new_position: int = Field(..., ge=0)
    hub_block: int = Field(..., ge=0)
    updater: str


class MintRequested(_Event):
    kind: Literal["MintRequested"] = "MintRequested"
    user: str
    amount: int = Field(..., gt=0)
    request_id: int = Field(..., ge=1)


# =============================================================================
# BRIDGE
# =============================================================================


class TransferInitiated(_Event):
    kind: Literal["TransferInitiated"] = "TransferInitiated"
    transfer_id: str
    sender: str
    amount: int = Field(..., gt=0)
    source_chain_id: int
    dest_chain_id: int
    recipient: str


class TransferCompleted(_Event):
    kind: Literal["TransferCompleted"] = "TransferCompleted"
    transfer_id: str
    recipient: str
    amount: int = Field(..., gt=0)
    source_chain_id: int
    timestamp: int


class TransferAcknowledged(_Event):
    kind: Literal["TransferAcknowledged"] = "TransferAcknowledged"
    transfer_id: str
    timestamp: int


class SupportedChainSet(_Event):
    kind: Literal["SupportedChainSet"] = "SupportedChainSet"
    chain_id: int
    supported: bool


# =============================================================================
# ROLES
# =============================================================================


class RoleGranted(_Event):
    kind: Literal["RoleGranted"] = "RoleGranted"
    role: str
    account: str
    sender: str


class RoleRevoked(_Event):
    kind: Literal["RoleRevoked"] = "RoleRevoked"
    role: str
    account: str
    sender: str


ProtocolEvent = Annotated[
    Union[
        Deposited,
        Withdrawn,
        MintFromPosition,
        HubPositionUpdated,
        MintRequested,
        TransferInitiated,
        TransferCompleted,
        TransferAcknowledged,
        SupportedChainSet,
        RoleGranted,
        RoleRevoked,
    ],
    Field(discriminator="kind"),
]


# =============================================================================
# LOG ENTRY
# =============================================================================


class LogEntry(BaseModel):
    """Запись event log домена."""

    chain_id: int = Field(..., ge=1)
    block_number: int = Field(..., ge=1)
    log_index: int = Field(..., ge=0)
    timestamp: int = Field(..., ge=0)
    emitter: str = Field(..., min_length=1, description="Адрес компонента-источника")
    event: ProtocolEvent

    model_config = {"frozen": True}

    @property
    def position(self) -> Tuple[int, int]:
        """Позиция в логе домена (block_number, log_index)."""
        return (self.block_number, self.log_index)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-совместимый payload для передачи через RPC."""
        return self.model_dump(mode="json")
