import tempfile
import unittest
from pathlib import Path

from usdx_protocol.relayer.checkpoint import Checkpoint, SQLiteCheckpointStore


class SQLiteCheckpointStoreTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.db_path = str(Path(self.tmpdir.name) / "checkpoint.db")
        self.store = SQLiteCheckpointStore(self.db_path)
        await self.store.init()

    async def asyncTearDown(self):
        self.tmpdir.cleanup()

    async def test_empty_store(self):
        self.assertIsNone(await self.store.load(1))
        self.assertEqual(await self.store.load_all(), {})

    async def test_save_and_load(self):
        self.assertTrue(await self.store.save(Checkpoint(1, 10, 2)))
        loaded = await self.store.load(1)
        self.assertEqual(loaded, Checkpoint(1, 10, 2))
        self.assertEqual(loaded.position, (10, 2))

    async def test_cursor_only_moves_forward(self):
        await self.store.save(Checkpoint(1, 10, 2))
        self.assertFalse(await self.store.save(Checkpoint(1, 10, 1)))
        self.assertFalse(await self.store.save(Checkpoint(1, 9, 5)))
        self.assertFalse(await self.store.save(Checkpoint(1, 10, 2)))
        self.assertTrue(await self.store.save(Checkpoint(1, 10, 3)))
        self.assertTrue(await self.store.save(Checkpoint(1, 11, 0)))
        self.assertEqual((await self.store.load(1)).position, (11, 0))

    async def test_chains_are_independent(self):
        await self.store.save(Checkpoint(1, 5, 0))
        await self.store.save(Checkpoint(137, 3, 1))
        all_checkpoints = await self.store.load_all()
        self.assertEqual(sorted(all_checkpoints), [1, 137])
        self.assertEqual(all_checkpoints[137].position, (3, 1))

    async def test_survives_reopen(self):
        await self.store.save(Checkpoint(1, 42, 7))
        reopened = SQLiteCheckpointStore(self.db_path)
        await reopened.init()
        self.assertEqual((await reopened.load(1)).position, (42, 7))

    async def test_namespaces_are_independent(self):
        """Новый экземпляр сети с теми же chain id не видит чужой курсор."""
        await self.store.save(Checkpoint(1, 42, 7))
        other = SQLiteCheckpointStore(self.db_path, namespace="network-b")
        await other.init()

        self.assertIsNone(await other.load(1))
        self.assertEqual(await other.load_all(), {})
        self.assertTrue(await other.save(Checkpoint(1, 3, 0)))
        self.assertEqual((await other.load(1)).position, (3, 0))
        self.assertEqual((await self.store.load(1)).position, (42, 7))
