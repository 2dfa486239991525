"""
Switchboard Components

Standard components. Each module is also a component library that can be
listed in a context description, e.g. "switchboard.components.tokens".
"""

from .console import LogSink
from .ticker import Ticker
from .tokens import TokenSender

LIBRARIES = [
    "switchboard.components.console",
    "switchboard.components.ticker",
    "switchboard.components.tokens",
]

__all__ = [
    "LogSink",
    "Ticker",
    "TokenSender",
    "LIBRARIES",
]
