"""
Roles — Таблица авторизации ролей

Авторизация выражена явной таблицей role → множество разрешённых операций.
Проверка — чистая функция `is_authorized`, без виртуальной диспетчеризации:
один и тот же предикат используется всеми компонентами, первым шагом
каждого мутирующего вызова.
"""

from enum import Enum
from typing import AbstractSet, Final, FrozenSet, Mapping

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class Role(str, Enum):
    """Роль субъекта в компоненте."""

    ADMIN = "ADMIN"
    MINTER = "MINTER"
    BURNER = "BURNER"
    RELAYER = "RELAYER"
    VAULT = "VAULT"
    BRIDGE = "BRIDGE"


class Operation(str, Enum):
    """Мутирующая операция, требующая авторизации."""

    MINT = "mint"
    BURN = "burn"
    MINT_FROM_HUB_POSITION = "mintFromHubPosition"
    UPDATE_HUB_POSITION = "updateHubPosition"
    COMPLETE_TRANSFER = "completeTransfer"
    ACKNOWLEDGE_COMPLETION = "acknowledgeCompletion"
    GRANT_ROLE = "grantRole"
    REVOKE_ROLE = "revokeRole"
    SET_SUPPORTED_CHAIN = "setSupportedChain"


# =============================================================================
# ТАБЛИЦА АВТОРИЗАЦИИ
# =============================================================================

AUTHORIZATION_TABLE: Final[Mapping[Role, FrozenSet[Operation]]] = {
    Role.ADMIN: frozenset(
        {Operation.GRANT_ROLE, Operation.REVOKE_ROLE, Operation.SET_SUPPORTED_CHAIN}
    ),
    Role.MINTER: frozenset({Operation.MINT}),
    Role.BURNER: frozenset({Operation.BURN}),
    Role.VAULT: frozenset({Operation.MINT, Operation.BURN}),
    Role.BRIDGE: frozenset({Operation.MINT, Operation.BURN}),
    Role.RELAYER: frozenset(
        {
            Operation.MINT_FROM_HUB_POSITION,
            Operation.UPDATE_HUB_POSITION,
            Operation.COMPLETE_TRANSFER,
            Operation.ACKNOWLEDGE_COMPLETION,
        }
    ),
}


class RoleGrant(BaseModel):
    """Выданная роль (subject, role)."""

    subject: str = Field(..., min_length=1, description="Аккаунт, получивший роль")
    role: Role = Field(..., description="Роль")

    model_config = {"frozen": True}


def roles_allowing(operation: Operation) -> FrozenSet[Role]:
    """Все роли, разрешающие операцию."""
    return frozenset(role for role, ops in AUTHORIZATION_TABLE.items() if operation in ops)


def is_authorized(
    grants: Mapping[str, AbstractSet[Role]],
    subject: str,
    operation: Operation,
) -> bool:
    """
    Чистый предикат авторизации.

    Args:
        grants: Выданные роли по субъектам
        subject: Вызывающий аккаунт
        operation: Запрашиваемая операция

    Returns:
        True если хотя бы одна роль субъекта разрешает операцию
    """
    return any(
        operation in AUTHORIZATION_TABLE.get(role, frozenset())
        for role in grants.get(subject, frozenset())
    )
