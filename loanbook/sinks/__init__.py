"""Output sinks for portfolio reports."""

from loanbook.sinks.console import ConsoleSink

__all__ = ["ConsoleSink"]
