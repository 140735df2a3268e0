# scripts/run_webhook_server.py
import argparse
import logging
import sys
from pathlib import Path

import uvicorn

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from zotion.config import LOG_FORMAT, LOG_LEVEL, WEBHOOK_PORT  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the Zotero change webhook and sync items into Notion.")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address. Default: 0.0.0.0.")
    parser.add_argument(
        "--port",
        type=int,
        default=WEBHOOK_PORT,
        help=f"Listen port. Default: {WEBHOOK_PORT}.",
    )
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only).")
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: LOG_LEVEL or INFO).",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)
    logging.getLogger("run_webhook_server").info("Starting webhook server on %s:%s", args.host, args.port)

    uvicorn.run(
        "zotion.api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
