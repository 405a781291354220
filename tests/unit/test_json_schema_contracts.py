"""
Tests for JSON Schema Contract Validators

Комплексное тестирование JSON Schema валидаторов:
- Валидность самих схем
- Валидация реальных payload из event log
- Детекция нарушений required полей и типов
- Детекция нарушений constraints (minimum/pattern/const)
- Интеграция с Pydantic моделями (LogEntry.to_payload)
"""

import json
from pathlib import Path

import pytest
from jsonschema import Draft202012Validator, ValidationError

from usdx_protocol.core.contracts import (
    RELAYED_EVENT_SCHEMAS,
    LogEntryValidator,
    PositionSnapshotValidator,
    SchemaLoader,
    validate_log_entry,
    validate_position_snapshot,
)
from usdx_protocol.core.domain.units import to_base_units

SCHEMA_DIR = Path(__file__).resolve().parents[2] / "src" / "usdx_protocol" / "core" / "contracts" / "schema"


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def deposited_payload(network, funded_user):
    network.hub.vault.deposit(funded_user, to_base_units("100"))
    return network.hub.chain.get_logs()[-1].to_payload()


@pytest.fixture
def transfer_payload(network, funded_user):
    network.hub.vault.deposit(funded_user, to_base_units("100"))
    network.hub.bridge.transfer_cross_chain(funded_user, 10, 137, "bob")
    return network.hub.chain.get_logs()[-1].to_payload()


@pytest.fixture
def valid_snapshot():
    return {"hub_chain_id": 1, "user": "alice", "position": 1_000_000, "hub_block": 7}


# =============================================================================
# SCHEMAS
# =============================================================================


class TestSchemaFiles:
    @pytest.mark.parametrize(
        "name",
        ["log_entry", "deposited", "withdrawn", "mint_requested", "transfer_initiated", "position_snapshot"],
    )
    def test_schema_is_valid_draft_2020_12(self, name):
        schema = SchemaLoader().load_schema(name)
        Draft202012Validator.check_schema(schema)

    def test_all_schema_files_covered(self):
        files = {path.stem for path in SCHEMA_DIR.glob("*.json")}
        expected = set(RELAYED_EVENT_SCHEMAS.values()) | {"log_entry", "position_snapshot"}
        assert files == expected

    def test_schema_files_are_json(self):
        for path in SCHEMA_DIR.glob("*.json"):
            with open(path, "r", encoding="utf-8") as f:
                assert json.load(f)["$schema"].endswith("2020-12/schema")

    def test_missing_schema(self):
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("does_not_exist")


# =============================================================================
# LOG ENTRY
# =============================================================================


class TestLogEntryContract:
    def test_real_deposited_payload(self, deposited_payload):
        validate_log_entry(deposited_payload)
        assert LogEntryValidator().is_valid(deposited_payload)

    def test_real_transfer_payload(self, transfer_payload):
        validate_log_entry(transfer_payload)
        assert transfer_payload["event"]["kind"] == "TransferInitiated"

    def test_envelope_missing_field(self, deposited_payload):
        del deposited_payload["block_number"]
        with pytest.raises(ValidationError):
            validate_log_entry(deposited_payload)

    def test_envelope_extra_field(self, deposited_payload):
        deposited_payload["extra"] = 1
        with pytest.raises(ValidationError):
            validate_log_entry(deposited_payload)

    def test_negative_amount_in_event(self, deposited_payload):
        deposited_payload["event"]["usdc_amount"] = -5
        with pytest.raises(ValidationError):
            validate_log_entry(deposited_payload)

    def test_amount_as_string_rejected(self, deposited_payload):
        deposited_payload["event"]["usdx_amount"] = "100"
        with pytest.raises(ValidationError):
            validate_log_entry(deposited_payload)

    def test_transfer_id_pattern(self, transfer_payload):
        transfer_payload["event"]["transfer_id"] = "0xZZ"
        with pytest.raises(ValidationError):
            validate_log_entry(transfer_payload)

    def test_non_relayed_event_checked_by_envelope_only(self, network):
        payload = network.hub.chain.get_logs()[0].to_payload()
        assert payload["event"]["kind"] == "RoleGranted"
        validate_log_entry(payload)

    def test_iter_errors_reports_all(self, deposited_payload):
        del deposited_payload["emitter"]
        del deposited_payload["timestamp"]
        errors = list(LogEntryValidator().iter_errors(deposited_payload))
        assert len(errors) == 2


# =============================================================================
# POSITION SNAPSHOT
# =============================================================================


class TestPositionSnapshotContract:
    def test_valid(self, valid_snapshot):
        validate_position_snapshot(valid_snapshot)
        assert PositionSnapshotValidator().is_valid(valid_snapshot)

    def test_zero_position_allowed(self, valid_snapshot):
        valid_snapshot["position"] = 0
        validate_position_snapshot(valid_snapshot)

    @pytest.mark.parametrize("field", ["hub_chain_id", "user", "position", "hub_block"])
    def test_required_fields(self, valid_snapshot, field):
        del valid_snapshot[field]
        with pytest.raises(ValidationError):
            validate_position_snapshot(valid_snapshot)

    def test_negative_position(self, valid_snapshot):
        valid_snapshot["position"] = -1
        with pytest.raises(ValidationError):
            validate_position_snapshot(valid_snapshot)
