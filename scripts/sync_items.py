# scripts/sync_items.py
import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from zotion.services.sync_engine import build_engine  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Push specific Zotero items into the Notion database.")
    parser.add_argument("keys", nargs="+", help="Zotero item keys to sync.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO).",
    )
    return parser.parse_args()


async def _sync(keys) -> dict:
    engine = build_engine()
    engine.enqueue(keys)
    await engine.wait_idle()
    return engine.status()


def main() -> None:
    args = _parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="[%(asctime)s] %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    log = logging.getLogger("sync_items")

    log.info("Sync start | items=%d", len(args.keys))
    start = time.time()
    status = asyncio.run(_sync(args.keys))
    log.info("Sync complete | status=%s | runtime=%.1fs", status, time.time() - start)

    if status.get("last_failure"):
        sys.exit(1)


if __name__ == "__main__":
    main()
