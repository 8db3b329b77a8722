import argparse
import asyncio
import logging
from datetime import timedelta

from dotenv import load_dotenv
load_dotenv()

from models.settings import Settings
from service_factory import ServiceFactory
from utils.time_utils import utcnow

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger("gms_service")


async def main(purge_days: int = None, skip_cycle: bool = False):
    services = ServiceFactory(Settings.from_env())
    await asyncio.to_thread(services.store.create_table)

    if not skip_cycle:
        print("Starting One-Off Cycle...")
        result = await services.cycle_executor.run_cycle(utcnow())
        print(f"Cycle {result.status.value}: {len(result.succeeded)} sent, "
              f"{len(result.failed)} failed, {result.expired_count} expired")

    if purge_days is not None:
        threshold = utcnow() - timedelta(days=purge_days)
        removed = await services.lifecycle.purge(threshold)
        print(f"Purged {removed} recipient(s) that expired before {threshold.isoformat()}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run one Good Morning Sunshine cycle now.")
    parser.add_argument("--purge-days", type=int, default=None,
                        help="also delete records whose expiry is older than this many days")
    parser.add_argument("--purge-only", action="store_true", help="skip the send cycle")
    args = parser.parse_args()
    asyncio.run(main(purge_days=args.purge_days, skip_cycle=args.purge_only))
