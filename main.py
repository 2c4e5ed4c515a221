import argparse
import os
import sys
from pathlib import Path

import uvicorn

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from guidex.config_manager import config  # noqa: E402
from guidex.logger import get_logger, setup_logging  # noqa: E402

logger = get_logger("main")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the GuideX API")
    parser.add_argument("--host", default=os.getenv("GUIDEX_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("GUIDEX_PORT", "8010")))
    parser.add_argument(
        "--reload",
        action="store_true",
        default=os.getenv("GUIDEX_RELOAD", "0").lower() in {"1", "true", "yes"},
        help="restart on changes under web/ and guidex/",
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging()
    logger.info("Starting GuideX on %s:%d (store backend: %s)", args.host, args.port, config.STORE_BACKEND)

    uvicorn.run(
        "web.backend.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_dirs=["web", "guidex"] if args.reload else None,
    )


if __name__ == "__main__":
    main()
