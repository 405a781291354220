"""Тесты таблицы авторизации и RoleRegistry."""

import pytest

from usdx_protocol.core.domain.roles import (
    AUTHORIZATION_TABLE,
    Operation,
    Role,
    is_authorized,
    roles_allowing,
)
from usdx_protocol.core.errors import AuthorizationError, Unauthorized
from usdx_protocol.ledger import Chain, ChainConfig, ManualClock, RoleRegistry


class TestAuthorizationTable:
    def test_relayer_entrypoints(self):
        assert roles_allowing(Operation.MINT_FROM_HUB_POSITION) == frozenset({Role.RELAYER})
        assert roles_allowing(Operation.COMPLETE_TRANSFER) == frozenset({Role.RELAYER})

    def test_mint_roles(self):
        assert roles_allowing(Operation.MINT) == frozenset({Role.MINTER, Role.VAULT, Role.BRIDGE})

    def test_burn_roles(self):
        assert roles_allowing(Operation.BURN) == frozenset({Role.BURNER, Role.VAULT, Role.BRIDGE})

    def test_only_admin_manages_roles(self):
        assert roles_allowing(Operation.GRANT_ROLE) == frozenset({Role.ADMIN})
        assert Operation.MINT not in AUTHORIZATION_TABLE[Role.ADMIN]

    def test_predicate(self):
        grants = {"relayer": {Role.RELAYER}, "vault": {Role.VAULT}}
        assert is_authorized(grants, "relayer", Operation.COMPLETE_TRANSFER)
        assert not is_authorized(grants, "relayer", Operation.MINT)
        assert is_authorized(grants, "vault", Operation.BURN)
        assert not is_authorized(grants, "stranger", Operation.MINT)


@pytest.fixture
def chain():
    return Chain(ChainConfig(chain_id=1, name="hub"), ManualClock())


@pytest.fixture
def registry(chain):
    return RoleRegistry(chain, "usdx", "admin")


class TestRoleRegistry:
    def test_admin_granted_at_construction(self, registry):
        assert registry.has_role(Role.ADMIN, "admin")

    def test_grant_and_revoke(self, registry, chain):
        assert registry.grant_role("admin", Role.MINTER, "minter")
        assert registry.has_role(Role.MINTER, "minter")
        assert not registry.grant_role("admin", Role.MINTER, "minter")

        assert registry.revoke_role("admin", Role.MINTER, "minter")
        assert not registry.has_role(Role.MINTER, "minter")
        assert not registry.revoke_role("admin", Role.MINTER, "minter")

        kinds = [entry.event.kind for entry in chain.get_logs()]
        assert kinds == ["RoleGranted", "RoleRevoked"]

    def test_non_admin_cannot_grant(self, registry, chain):
        with pytest.raises(Unauthorized) as exc_info:
            registry.grant_role("mallory", Role.MINTER, "mallory")
        assert exc_info.value.reason == "Unauthorized"
        assert isinstance(exc_info.value, AuthorizationError)
        assert not registry.has_role(Role.MINTER, "mallory")
        assert chain.get_logs() == []

    def test_require(self, registry):
        registry.grant_role("admin", Role.BURNER, "burner")
        registry.require("burner", Operation.BURN)
        with pytest.raises(Unauthorized):
            registry.require("burner", Operation.MINT)

    def test_grants_snapshot_is_immutable(self, registry):
        snapshot = registry.grants()
        assert snapshot["admin"] == frozenset({Role.ADMIN})
