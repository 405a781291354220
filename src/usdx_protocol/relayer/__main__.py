import asyncio
import logging
import os
import signal
import sys

from dotenv import load_dotenv

from usdx_protocol.ledger.chain import SystemClock
from usdx_protocol.ledger.network import build_local_network
from usdx_protocol.relayer.checkpoint import SQLiteCheckpointStore
from usdx_protocol.relayer.clients import clients_for_network
from usdx_protocol.relayer.config import load_relayer_config
from usdx_protocol.relayer.service import PositionRelayer

logger = logging.getLogger(__name__)


async def main() -> None:
    config = load_relayer_config()
    logger.info("Building local network")
    network = build_local_network(
        hub_chain_id=config.hub_chain_id,
        spoke_chain_ids=config.spoke_chain_ids,
        relayer=config.relayer_address,
        clock=SystemClock(),
    )
    logger.info("Local network id %s", network.network_id)
    hub, spokes = clients_for_network(network)
    store = SQLiteCheckpointStore(config.checkpoint_db, namespace=network.network_id)
    relayer = PositionRelayer(config, hub, spokes, store)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, relayer.stop)

    logger.info("Starting relayer loop")
    try:
        await relayer.run()
    finally:
        logger.info("Shutting down relayer")


def run() -> int:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user, shutting down")
    except Exception:
        logger.exception("Relayer stopped due to unrecoverable error")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run())
