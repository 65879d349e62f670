"""Abstract base class for buy providers."""

from abc import ABC, abstractmethod

from burnbot.models import BuyResult


class BuyProvider(ABC):
    """Interface for spending SOL on the configured token."""

    @abstractmethod
    async def buy(self, sol_amount: float) -> BuyResult:
        """Buy tokens worth sol_amount SOL. Reports failure instead of raising."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release any network resources."""
        ...
