"""Sample data generators."""

from loanbook.generators.portfolio import (
    LoanGenerator,
    PropertyGenerator,
    SamplePortfolio,
)

__all__ = ["LoanGenerator", "PropertyGenerator", "SamplePortfolio"]
