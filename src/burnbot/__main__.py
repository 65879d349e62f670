"""Entry point: python -m burnbot"""

import asyncio
import os
import sys
from pathlib import Path

import structlog
from pydantic import ValidationError

from burnbot.config import Settings, load_config, missing_env_keys
from burnbot.engine import BurnEngine
from burnbot.logging_config import configure_logging
from burnbot.wallet import WalletLoadError, load_keypair

logger = structlog.get_logger("burnbot")


def main():
    config = load_config(Path(os.getenv("BURNBOT_CONFIG", "config/settings.yaml")))
    try:
        settings = Settings()
    except ValidationError as e:
        missing = missing_env_keys(e)
        if missing:
            print("Missing required environment variables:")
            for key in missing:
                print(f"   - {key}")
        else:
            print(f"Invalid configuration: {e}")
        print("Set them in the environment or in .env")
        sys.exit(1)

    configure_logging(config.logging)

    try:
        keypair = load_keypair(settings.creator_private_key)
    except WalletLoadError as e:
        print(f"Failed to load wallet: {e}")
        print("CREATOR_PRIVATE_KEY must be a base58 encoded secret key")
        sys.exit(1)

    try:
        engine = BurnEngine(config, settings, keypair)
        asyncio.run(engine.start())
    except Exception as e:
        logger.error("burnbot.fatal_error", error=str(e), exc_info=True)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
