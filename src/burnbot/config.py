"""Configuration loading and validation using Pydantic."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings
from solders.pubkey import Pubkey

DEFAULT_RPC_ENDPOINT = "https://api.mainnet-beta.solana.com"
PUMPPORTAL_TRADE_URL = "https://pumpportal.fun/api/trade-local"

REQUIRED_ENV_KEYS = ("CREATOR_PRIVATE_KEY", "TOKEN_MINT_ADDRESS")


class ProvidersConfig(BaseModel):
    buy: str = "pumpportal"


class TradeConfig(BaseModel):
    endpoint: str = PUMPPORTAL_TRADE_URL
    slippage_pct: float = Field(default=10, gt=0, le=100)
    priority_fee_sol: float = Field(default=0.0005, ge=0)
    pool: str = "pump"
    timeout_seconds: float = Field(default=30, gt=0)


class CycleConfig(BaseModel):
    """Timing and sizing of a single buy-and-burn cycle."""

    interval_seconds: float = Field(default=60, gt=0)
    fee_reserve_sol: float = Field(default=0.005, ge=0)
    min_buy_sol: float = Field(default=0.001, gt=0)
    settle_timeout_seconds: float = Field(default=30, ge=0)
    settle_poll_seconds: float = Field(default=1.0, ge=0)


class RpcConfig(BaseModel):
    timeout_seconds: float = Field(default=30, gt=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = Field(default=False, alias="json")

    model_config = {"populate_by_name": True}


class AppConfig(BaseModel):
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    trade: TradeConfig = Field(default_factory=TradeConfig)
    cycle: CycleConfig = Field(default_factory=CycleConfig)
    rpc: RpcConfig = Field(default_factory=RpcConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class Settings(BaseSettings):
    """Loaded from the environment (or .env) once at startup."""

    rpc_endpoint: str = DEFAULT_RPC_ENDPOINT
    creator_private_key: str
    token_mint_address: str
    min_sol_balance: float = Field(default=0.005, ge=0)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator("creator_private_key", "token_mint_address")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("token_mint_address")
    @classmethod
    def valid_mint(cls, v: str) -> str:
        try:
            Pubkey.from_string(v)
        except Exception as e:
            raise ValueError(f"not a valid public key: {v}") from e
        return v

    @property
    def token_mint(self) -> Pubkey:
        return Pubkey.from_string(self.token_mint_address)


def missing_env_keys(error: ValidationError) -> list[str]:
    """Names of required environment keys reported missing by a Settings error."""
    missing = set()
    for err in error.errors():
        if err["type"] == "missing" and err["loc"]:
            missing.add(str(err["loc"][0]).upper())
    return [key for key in REQUIRED_ENV_KEYS if key in missing]


def load_config(config_path: Path = Path("config/settings.yaml")) -> AppConfig:
    """Load and validate tunables from YAML. A missing file yields the defaults."""
    if not config_path.exists():
        return AppConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    return AppConfig(**raw)
