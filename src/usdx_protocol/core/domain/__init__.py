"""
Domain models and value objects.

Contains units, roles, positions, write-once records, events and ids.
"""

from usdx_protocol.core.domain.units import (
    SECONDS_PER_DAY,
    SECONDS_PER_YEAR,
    SHARE_DECIMALS,
    SHARE_SCALE,
    USDC_DECIMALS,
    USDX_DECIMALS,
    WAD,
    format_units,
    to_base_units,
    validate_address,
    validate_amount,
    validate_non_negative,
)
from usdx_protocol.core.domain.roles import (
    AUTHORIZATION_TABLE,
    Operation,
    Role,
    RoleGrant,
    is_authorized,
    roles_allowing,
)
from usdx_protocol.core.domain.position import CollateralPosition, YieldPricing
from usdx_protocol.core.domain.records import (
    AttestedHubPosition,
    MintRecord,
    MintRequest,
    TransferRecord,
    TransferStatus,
)
from usdx_protocol.core.domain.events import (
    Deposited,
    HubPositionUpdated,
    LogEntry,
    MintFromPosition,
    MintRequested,
    RoleGranted,
    RoleRevoked,
    SupportedChainSet,
    TransferAcknowledged,
    TransferCompleted,
    TransferInitiated,
    Withdrawn,
)
from usdx_protocol.core.domain.ids import (
    compute_transfer_id,
    derive_request_mint_id,
    hash_words,
)

__all__ = [
    # Units module
    "USDC_DECIMALS",
    "USDX_DECIMALS",
    "WAD",
    "SHARE_DECIMALS",
    "SHARE_SCALE",
    "SECONDS_PER_DAY",
    "SECONDS_PER_YEAR",
    "to_base_units",
    "format_units",
    "validate_amount",
    "validate_non_negative",
    "validate_address",
    # Roles
    "Role",
    "Operation",
    "RoleGrant",
    "AUTHORIZATION_TABLE",
    "is_authorized",
    "roles_allowing",
    # Positions
    "CollateralPosition",
    "YieldPricing",
    # Records
    "MintRecord",
    "MintRequest",
    "AttestedHubPosition",
    "TransferRecord",
    "TransferStatus",
    # Events
    "Deposited",
    "Withdrawn",
    "MintFromPosition",
    "HubPositionUpdated",
    "MintRequested",
    "TransferInitiated",
    "TransferCompleted",
    "TransferAcknowledged",
    "SupportedChainSet",
    "RoleGranted",
    "RoleRevoked",
    "LogEntry",
    # Ids
    "hash_words",
    "compute_transfer_id",
    "derive_request_mint_id",
]
