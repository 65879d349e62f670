"""Provider factory: creates the buy implementation named in config."""

from solana.rpc.async_api import AsyncClient
from solders.keypair import Keypair

from burnbot.config import AppConfig, Settings
from burnbot.trading.base import BuyProvider

BUY_PROVIDERS = {
    "pumpportal": "burnbot.trading.pumpportal:PumpPortalBuyProvider",
}


def _import_class(path: str):
    """Import a class from a 'module:ClassName' string."""
    module_path, class_name = path.split(":")
    import importlib

    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def create_buy_provider(
    config: AppConfig,
    settings: Settings,
    client: AsyncClient,
    keypair: Keypair,
) -> BuyProvider:
    """Create a buy provider based on config.providers.buy."""
    name = config.providers.buy
    if name not in BUY_PROVIDERS:
        raise ValueError(
            f"Unknown buy provider: '{name}'. Available: {list(BUY_PROVIDERS.keys())}"
        )
    cls = _import_class(BUY_PROVIDERS[name])
    return cls(config, settings, client, keypair)
