"""
Access — Реестр ролей компонента

Один RoleRegistry на компонент (token, minter, bridge). Выдача и отзыв
ролей — только ADMIN; проверка прав делегируется чистому предикату
`is_authorized` из таблицы авторизации.
"""

import logging
from typing import Dict, FrozenSet, Mapping, Set

from usdx_protocol.core.domain.events import RoleGranted, RoleRevoked
from usdx_protocol.core.domain.roles import Operation, Role, is_authorized
from usdx_protocol.core.domain.units import validate_address
from usdx_protocol.core.errors import Unauthorized
from usdx_protocol.ledger.chain import Chain

logger = logging.getLogger(__name__)


class RoleRegistry:
    """Роли субъектов в одном компоненте домена."""

    def __init__(self, chain: Chain, owner: str, admin: str):
        """
        Args:
            chain: Домен, в event log которого публикуются изменения ролей
            owner: Адрес компонента-владельца реестра
            admin: Аккаунт, получающий ADMIN при создании
        """
        self._chain = chain
        self.owner = owner
        self._grants: Dict[str, Set[Role]] = {validate_address(admin): {Role.ADMIN}}

    def grants(self) -> Mapping[str, FrozenSet[Role]]:
        """Снимок выданных ролей."""
        return {subject: frozenset(roles) for subject, roles in self._grants.items()}

    def has_role(self, role: Role, account: str) -> bool:
        return role in self._grants.get(account, set())

    def require(self, subject: str, operation: Operation) -> None:
        """
        Проверка права на операцию.

        Raises:
            Unauthorized: Если ни одна роль субъекта не разрешает операцию
        """
        if not is_authorized(self._grants, subject, operation):
            raise Unauthorized(
                f"{subject} is not authorized for {operation.value} on {self.owner}"
            )

    def grant_role(self, caller: str, role: Role, account: str) -> bool:
        """
        Выдача роли (только ADMIN).

        Returns:
            True если роль выдана впервые, False если уже была
        """
        with self._chain.transaction() as tx:
            self.require(caller, Operation.GRANT_ROLE)
            validate_address(account)
            if self.has_role(role, account):
                return False
            self._grants.setdefault(account, set()).add(role)
            tx.emit(self.owner, RoleGranted(role=role.value, account=account, sender=caller))
        logger.info("%s: granted %s to %s", self.owner, role.value, account)
        return True

    def revoke_role(self, caller: str, role: Role, account: str) -> bool:
        """
        Отзыв роли (только ADMIN).

        Returns:
            True если роль была отозвана
        """
        with self._chain.transaction() as tx:
            self.require(caller, Operation.REVOKE_ROLE)
            if not self.has_role(role, account):
                return False
            self._grants[account].discard(role)
            tx.emit(self.owner, RoleRevoked(role=role.value, account=account, sender=caller))
        logger.info("%s: revoked %s from %s", self.owner, role.value, account)
        return True
