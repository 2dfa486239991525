"""
TokenSender - turns named operations into token emissions.

Configured with a list of token names, each name becomes an operation of
the instance that emits `send_token(name)`. Connecting `send_token` to a
statemachine's `set_token` lets any event drive the statemachine.
"""

import functools
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..core.component import Component

log = logging.getLogger(__name__)


class TokenSender(Component, operations=["send"], events=["send_token"]):
    def __init__(self, tokens: Iterable[Any] = ()):
        self._senders: Dict[str, Callable[[], None]] = {}
        for token in tokens:
            if isinstance(token, str):
                self._senders[token] = functools.partial(self.send, token)

    def send(self, token: str) -> None:
        log.debug(f"[TokenSender] emitting {token}")
        self.emit("send_token", token)

    def operation_list(self) -> List[str]:
        return super().operation_list() + list(self._senders)

    def resolve_operation(self, name: str) -> Optional[Callable[..., Any]]:
        return super().resolve_operation(name) or self._senders.get(name)


def components(core):
    return {"TokenSender": TokenSender}
