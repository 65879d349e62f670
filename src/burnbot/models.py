"""Domain models for the buy-and-burn loop."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CycleOutcome(str, Enum):
    COMPLETED = "COMPLETED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    NOTHING_TO_SPEND = "NOTHING_TO_SPEND"
    BUY_FAILED = "BUY_FAILED"
    BURN_FAILED = "BURN_FAILED"
    ERROR = "ERROR"


class BuyResult(BaseModel):
    """Outcome of a single purchase through the trading service."""

    success: bool
    sol_amount: float
    signature: Optional[str] = None
    error: Optional[str] = None


class BurnResult(BaseModel):
    """Outcome of a single burn transaction. amount is in raw token units."""

    success: bool
    amount: int = 0
    signature: Optional[str] = None
    error: Optional[str] = None


class CycleResult(BaseModel):
    """What happened during one cycle. Kept in memory only."""

    cycle: int
    outcome: Optional[CycleOutcome] = None
    sol_balance: float = 0.0
    sol_spent: float = 0.0
    buy: Optional[BuyResult] = None
    burn: Optional[BurnResult] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None


class BurnStats(BaseModel):
    """Cumulative counters for the lifetime of the process."""

    total_burns: int = 0
    total_tokens_burned: int = 0
    total_sol_spent: float = 0.0
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_burn_time: Optional[datetime] = None

    def record_burn(
        self, sol_spent: float, tokens_burned: int, at: Optional[datetime] = None
    ) -> None:
        """Account for one fully successful buy-and-burn cycle."""
        self.total_burns += 1
        self.total_tokens_burned += tokens_burned
        self.total_sol_spent += sol_spent
        self.last_burn_time = at or datetime.now(timezone.utc)
