"""
LogSink - writes whatever it receives to the log.
"""

import logging
from typing import Any, List, Tuple

from ..core.component import Component

log = logging.getLogger(__name__)


class LogSink(Component, operations=["display", "clear"]):
    def __init__(self, label: str = "sink"):
        self.label = label
        self.received: List[Tuple[Any, ...]] = []

    def display(self, *args: Any) -> None:
        self.received.append(args)
        log.info(f"[{self.label}] {' '.join(str(a) for a in args)}")

    def clear(self) -> None:
        self.received.clear()


def components(core):
    return {"LogSink": LogSink}
