"""Signing identity loaded from the configured secret key."""

import json

import structlog
from base58 import b58decode
from solders.keypair import Keypair

logger = structlog.get_logger(__name__)


class WalletLoadError(Exception):
    """Raised when the secret key cannot be turned into a keypair."""


def load_keypair(secret: str) -> Keypair:
    """Decode a base58 secret key (or a JSON byte array) into a Keypair.

    The JSON form is what `solana-keygen` writes to disk, so a key file's
    contents can be pasted as-is.
    """
    raw = (secret or "").strip()
    if not raw:
        raise WalletLoadError("secret key is empty")

    try:
        if raw.startswith("["):
            key_bytes = bytes(json.loads(raw))
        else:
            key_bytes = b58decode(raw)
        keypair = Keypair.from_bytes(key_bytes)
    except Exception as e:
        raise WalletLoadError(f"could not decode secret key: {e}") from e

    logger.debug("wallet.loaded", pubkey=str(keypair.pubkey()))
    return keypair
