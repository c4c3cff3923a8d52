"""Portfolio repositories."""

from loanbook.store.base import PortfolioRepository
from loanbook.store.portfolio import PortfolioStore

__all__ = ["PortfolioRepository", "PortfolioStore"]
