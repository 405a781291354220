"""
Contract Validation Module

Модуль для валидации JSON контрактов между доменами и relayer.
"""

from .validators import (
    RELAYED_EVENT_SCHEMAS,
    ContractValidator,
    LogEntryValidator,
    PositionSnapshotValidator,
    SchemaLoader,
    validate_log_entry,
    validate_position_snapshot,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "LogEntryValidator",
    "PositionSnapshotValidator",
    "RELAYED_EVENT_SCHEMAS",
    # Functions
    "validate_log_entry",
    "validate_position_snapshot",
]
