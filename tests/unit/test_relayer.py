import asyncio
import tempfile
import unittest
from pathlib import Path

from jsonschema import ValidationError as SchemaValidationError

from usdx_protocol.core.domain.records import TransferStatus
from usdx_protocol.core.domain.units import to_base_units
from usdx_protocol.core.errors import UnsupportedChain
from usdx_protocol.ledger import ManualClock, build_local_network
from usdx_protocol.relayer import (
    InProcessDomainClient,
    PositionRelayer,
    RelayerConfig,
    SQLiteCheckpointStore,
    clients_for_network,
)

HUB = 1
SPOKE = 137
THOUSAND = to_base_units("1000")


class CrashingCheckpointStore(SQLiteCheckpointStore):
    """Падает при записи курсора за блоком crash_at=(chain_id, block_number)."""

    def __init__(self, path, crash_at):
        super().__init__(path)
        self.crash_at = crash_at

    async def save(self, checkpoint):
        if (checkpoint.chain_id, checkpoint.block_number) == self.crash_at:
            raise RuntimeError("simulated crash before checkpoint write")
        return await super().save(checkpoint)


class CorruptingClient(InProcessDomainClient):
    async def get_logs(self, after=None):
        payloads = await super().get_logs(after)
        for payload in payloads:
            payload["block_number"] = 0
        return payloads


class PositionRelayerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.db_path = str(Path(self.tmpdir.name) / "checkpoint.db")
        self.clock = ManualClock()
        self.network = build_local_network(hub_chain_id=HUB, spoke_chain_ids=(SPOKE,), clock=self.clock)
        self.hub = self.network.hub
        self.spoke = self.network.spokes[SPOKE]
        self.hub_client, self.spoke_clients = clients_for_network(self.network)
        self.config = RelayerConfig(
            hub_chain_id=HUB,
            spoke_chain_ids=(SPOKE,),
            checkpoint_db=self.db_path,
            max_retries=2,
            backoff_base_sec=0.0,
            backoff_max_sec=0.0,
            poll_interval_sec=0.01,
            heartbeat_interval_sec=0.01,
        )
        self.sleeps = []
        self.relayer = await self._start_relayer()

        self.network.faucet("alice", to_base_units("10000"))

    async def asyncTearDown(self):
        self.tmpdir.cleanup()

    async def _start_relayer(self, store=None, spokes=None, hub=None):
        async def fake_sleep(delay):
            self.sleeps.append(delay)

        relayer = PositionRelayer(
            self.config,
            hub or self.hub_client,
            self.spoke_clients if spokes is None else spokes,
            store or SQLiteCheckpointStore(self.db_path),
            sleep=fake_sleep,
        )
        await relayer.start()
        return relayer

    # -------------------------------------------------------------------------
    # Position sync
    # -------------------------------------------------------------------------

    async def test_deposit_syncs_position_to_spoke(self):
        self.hub.vault.deposit("alice", THOUSAND)
        await self.relayer.poll_once()

        self.assertEqual(self.spoke.minter.get_user_position("alice"), THOUSAND)
        attested = self.spoke.minter.get_attested_position("alice")
        self.assertEqual(attested.hub_block, self.hub.chain.block_number)
        self.assertEqual(await self.relayer.poll_once(), 0)

    async def test_events_without_handler_advance_cursor(self):
        """HubPositionUpdated на spoke не требует действий, но курсор сдвигается."""
        self.hub.vault.deposit("alice", THOUSAND)
        await self.relayer.poll_once()

        last = self.spoke.chain.get_logs()[-1]
        self.assertEqual(last.event.kind, "HubPositionUpdated")
        self.assertEqual(self.relayer.cursors[SPOKE], last.position)
        self.assertEqual(await self.relayer.poll_once(), 0)

    async def test_withdraw_lowers_attested_position(self):
        self.hub.vault.deposit("alice", THOUSAND)
        await self.relayer.poll_once()
        self.hub.vault.withdraw("alice", to_base_units("600"))
        await self.relayer.poll_once()

        self.assertEqual(self.spoke.minter.get_user_position("alice"), to_base_units("400"))

    # -------------------------------------------------------------------------
    # Mint requests
    # -------------------------------------------------------------------------

    async def test_mint_request_fulfilled(self):
        self.hub.vault.deposit("alice", THOUSAND)
        await self.relayer.poll_once()
        request = self.spoke.minter.request_mint("alice", to_base_units("400"))
        await self.relayer.poll_once()

        self.assertEqual(self.spoke.usdx.balance_of("alice"), to_base_units("400"))
        self.assertTrue(self.spoke.minter.is_request_fulfilled(request.request_id))

    async def test_duplicate_delivery_single_effect(self):
        """Relayer без checkpoint повторно проходит весь лог, эффект один."""
        self.hub.vault.deposit("alice", THOUSAND)
        await self.relayer.poll_once()
        self.spoke.minter.request_mint("alice", to_base_units("400"))
        await self.relayer.poll_once()

        fresh_db = str(Path(self.tmpdir.name) / "fresh.db")
        replay = await self._start_relayer(store=SQLiteCheckpointStore(fresh_db))
        await replay.poll_once()

        self.assertEqual(self.spoke.usdx.balance_of("alice"), to_base_units("400"))
        self.assertEqual(self.spoke.minter.get_minted_total("alice"), to_base_units("400"))

    async def test_rejected_mint_request_advances_cursor(self):
        self.hub.vault.deposit("alice", THOUSAND)
        await self.relayer.poll_once()
        self.spoke.minter.request_mint("alice", to_base_units("400"))
        self.hub.vault.withdraw("alice", to_base_units("900"))

        with self.assertLogs("usdx_protocol.relayer.service", level="WARNING") as logs:
            await self.relayer.poll_once()

        self.assertEqual(self.spoke.usdx.balance_of("alice"), 0)
        self.assertTrue(any("rejected" in line for line in logs.output))
        self.assertEqual(await self.relayer.poll_once(), 0)

    # -------------------------------------------------------------------------
    # Bridge
    # -------------------------------------------------------------------------

    async def test_transfer_completed_and_acknowledged(self):
        self.hub.vault.deposit("alice", THOUSAND)
        record = self.hub.bridge.transfer_cross_chain("alice", 300, SPOKE, "bob")
        await self.relayer.poll_once()

        self.assertEqual(self.spoke.usdx.balance_of("bob"), 300)
        self.assertEqual(
            self.hub.bridge.get_transfer(record.transfer_id).status, TransferStatus.COMPLETED
        )
        self.assertEqual(self.hub.bridge.pending_transfers(), [])

    async def test_crash_before_checkpoint_redelivers(self):
        """Падение между вызовом destination и записью курсора."""
        self.hub.vault.deposit("alice", THOUSAND)
        self.hub.bridge.transfer_cross_chain("alice", 300, SPOKE, "bob")
        transfer_block = self.hub.chain.block_number

        crashing = await self._start_relayer(
            store=CrashingCheckpointStore(self.db_path, crash_at=(HUB, transfer_block))
        )
        with self.assertRaises(RuntimeError):
            await crashing.poll_once()
        self.assertEqual(self.spoke.usdx.balance_of("bob"), 300)

        restarted = await self._start_relayer()
        self.assertLess(restarted.cursors[HUB], (transfer_block, 0))
        await restarted.poll_once()

        self.assertEqual(self.spoke.usdx.balance_of("bob"), 300)
        self.assertEqual(self.spoke.usdx.total_supply, 300)
        # acknowledge_completion первого прохода добавил блок на hub
        self.assertEqual(restarted.cursors[HUB], (self.hub.chain.block_number, 0))

    async def test_unknown_destination_is_fatal(self):
        self.hub.vault.deposit("alice", THOUSAND)
        self.hub.bridge.transfer_cross_chain("alice", 300, SPOKE, "bob")
        hub_only = await self._start_relayer(
            store=SQLiteCheckpointStore(str(Path(self.tmpdir.name) / "hub_only.db")), spokes={}
        )

        with self.assertRaises(UnsupportedChain):
            await hub_only.poll_once()

    async def test_corrupt_payload_is_fatal(self):
        corrupt_hub = CorruptingClient(self.hub.chain, vault=self.hub.vault, bridge=self.hub.bridge)
        relayer = await self._start_relayer(
            store=SQLiteCheckpointStore(str(Path(self.tmpdir.name) / "corrupt.db")), hub=corrupt_hub
        )
        with self.assertRaises(SchemaValidationError):
            await relayer.poll_once()

    # -------------------------------------------------------------------------
    # Retries
    # -------------------------------------------------------------------------

    async def test_transient_rpc_failure_retried(self):
        self.hub.vault.deposit("alice", THOUSAND)
        self.hub_client.inject_fault("get_user_position_snapshot", 2)

        await self.relayer.poll_once()

        self.assertEqual(self.spoke.minter.get_user_position("alice"), THOUSAND)
        self.assertEqual(len(self.sleeps), 2)

    async def test_exhausted_retries_hold_cursor(self):
        self.hub.vault.deposit("alice", THOUSAND)
        deposit_block = self.hub.chain.block_number
        self.spoke_clients[SPOKE].inject_fault("update_hub_position", 3)

        await self.relayer.poll_once()
        self.assertEqual(self.spoke.minter.get_user_position("alice"), 0)
        self.assertLess(self.relayer.cursors[HUB], (deposit_block, 0))

        await self.relayer.poll_once()
        self.assertEqual(self.spoke.minter.get_user_position("alice"), THOUSAND)
        self.assertEqual(self.relayer.cursors[HUB], (deposit_block, 0))

    async def test_logs_unavailable_skips_chain(self):
        self.hub.vault.deposit("alice", THOUSAND)
        self.hub_client.inject_fault("get_logs", 3)

        self.assertEqual(await self.relayer.poll_once(), len(self.spoke.chain.get_logs()))
        self.assertEqual(self.spoke.minter.get_user_position("alice"), 0)

    # -------------------------------------------------------------------------
    # Restart / heartbeat / lifecycle
    # -------------------------------------------------------------------------

    async def test_restart_resumes_from_checkpoint(self):
        self.hub.vault.deposit("alice", THOUSAND)
        await self.relayer.poll_once()

        restarted = await self._start_relayer()
        self.assertEqual(restarted.cursors, self.relayer.cursors)
        self.assertEqual(await restarted.poll_once(), 0)

    async def test_heartbeat_reports_block_heights(self):
        with self.assertLogs("usdx_protocol.relayer.service", level="INFO") as logs:
            heights = await self.relayer.heartbeat_once()

        self.assertEqual(heights, {HUB: self.hub.chain.block_number, SPOKE: self.spoke.chain.block_number})
        self.assertTrue(any("Heartbeat" in line for line in logs.output))

    async def test_heartbeat_tolerates_unavailable_chain(self):
        self.spoke_clients[SPOKE].inject_fault("get_block_number")
        heights = await self.relayer.heartbeat_once()
        self.assertIsNone(heights[SPOKE])
        self.assertEqual(heights[HUB], self.hub.chain.block_number)

    async def test_run_stops_cleanly(self):
        self.hub.vault.deposit("alice", THOUSAND)
        task = asyncio.create_task(self.relayer.run())
        await asyncio.sleep(0.05)
        self.relayer.stop()
        await asyncio.wait_for(task, timeout=2)

        self.assertEqual(self.spoke.minter.get_user_position("alice"), THOUSAND)

    async def test_new_network_ignores_checkpoint_of_previous_one(self):
        """Тот же файл БД, новая сеть с теми же chain id: курсор с нуля."""
        self.hub.vault.deposit("alice", THOUSAND)
        self.hub.vault.deposit("alice", THOUSAND)
        await self.relayer.poll_once()

        network = build_local_network(hub_chain_id=HUB, spoke_chain_ids=(SPOKE,), clock=self.clock)
        network.faucet("carol", THOUSAND)
        network.hub.vault.deposit("carol", THOUSAND)
        hub_client, spoke_clients = clients_for_network(network)
        relayer = await self._start_relayer(
            store=SQLiteCheckpointStore(self.db_path, namespace=network.network_id),
            spokes=spoke_clients,
            hub=hub_client,
        )

        self.assertIsNone(relayer.cursors[HUB])
        await relayer.poll_once()
        self.assertEqual(network.spokes[SPOKE].minter.get_user_position("carol"), THOUSAND)
