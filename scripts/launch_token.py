"""Launch a single token from the command line.

Reads wallet and endpoints from .env, runs one launch through the full
pipeline and prints the result as JSON.

Usage:
    python scripts/launch_token.py --name "My Token" --symbol MTK \
        --buy 0.5 --fee 0.01 --image ./logo.png
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger  # noqa: E402
from pydantic import ValidationError  # noqa: E402

from config.settings import settings  # noqa: E402
from src.launcher.bootstrap import create_pipeline  # noqa: E402
from src.launcher.exceptions import ConfigError  # noqa: E402
from src.launcher.models import LaunchRequest  # noqa: E402
from src.utils.logger import setup_logger  # noqa: E402


def _build_request(args: argparse.Namespace) -> LaunchRequest:
    image_data = None
    if args.image:
        image_data = Path(args.image).read_bytes()
    return LaunchRequest(
        name=args.name,
        symbol=args.symbol,
        description=args.description,
        twitter=args.twitter,
        telegram=args.telegram,
        website=args.website,
        initial_buy_sol=args.buy,
        total_fee_sol=args.fee,
        image_data=image_data,
        image_url=args.image_url,
    )


async def main() -> int:
    parser = argparse.ArgumentParser(description="Create a pump.fun token with an initial buy")
    parser.add_argument("--name", required=True)
    parser.add_argument("--symbol", required=True)
    parser.add_argument("--description", default="")
    parser.add_argument("--twitter", default="")
    parser.add_argument("--telegram", default="")
    parser.add_argument("--website", default="")
    parser.add_argument("--buy", type=float, required=True, help="Initial buy in SOL")
    parser.add_argument("--fee", type=float, default=0.0, help="Total fee budget in SOL")
    parser.add_argument("--image", default=None, help="Path to a local image file")
    parser.add_argument("--image-url", default=None, help="Already hosted image URL")
    args = parser.parse_args()

    setup_logger(json_logs=settings.log_json, level=settings.log_level, log_dir=settings.log_dir)

    try:
        request = _build_request(args)
    except (OSError, ValidationError) as e:
        logger.error(f"Invalid launch request: {e}")
        return 2

    try:
        pipeline = create_pipeline(settings)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    await pipeline.start()
    try:
        result = await pipeline.launch(request)
    finally:
        await pipeline.stop()

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
