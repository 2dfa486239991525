"""
FastAPI application for the Switchboard inspection API.

Provides:
- The running application's declarative description
- Sheet and controller state
- Token feeding into the controller
- Real-time log streaming via SSE
"""

import asyncio
import json
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Deque, Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from ..core.component import invoke
from ..core.errors import WiringError

if TYPE_CHECKING:
    from ..core.application import Application

log = logging.getLogger(__name__)


@dataclass
class SharedState:
    """
    State shared between the running application and the web server.

    Log records may arrive from worker threads (resource and library
    loading), so the buffer is guarded by a lock. Indexes passed to
    `get_logs` count every record ever added, so readers keep their place
    after old records fall out of the bounded buffer.
    """

    application: Optional["Application"] = None
    log_buffer: int = 1000
    _logs: Deque[Dict] = field(init=False, repr=False)
    _log_total: int = field(default=0, init=False)
    _log_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self):
        self._logs = deque(maxlen=self.log_buffer)

    def add_log(self, record: Dict) -> None:
        """Add a log record (thread-safe)."""
        with self._log_lock:
            self._logs.append(record)
            self._log_total += 1

    def read_logs(self, since_index: int = 0) -> Tuple[List[Dict], int]:
        """Logs since a given index and the index to read from next (thread-safe)."""
        with self._log_lock:
            logs = list(self._logs)
            total = self._log_total
        start = max(since_index - (total - len(logs)), 0)
        return logs[start:], total

    def get_logs(self, since_index: int = 0) -> List[Dict]:
        """Get logs since a given index (thread-safe)."""
        return self.read_logs(since_index)[0]

    def get_log_count(self) -> int:
        """Total number of records added, including those already evicted."""
        with self._log_lock:
            return self._log_total


# Global shared state
_shared_state: Optional[SharedState] = None


def get_shared_state(log_buffer: int = 1000) -> SharedState:
    """Get or create the global shared state. `log_buffer` applies on creation."""
    global _shared_state
    if _shared_state is None:
        _shared_state = SharedState(log_buffer=log_buffer)
    return _shared_state


class WebLogHandler(logging.Handler):
    """
    Logging handler that forwards logs to the web interface.
    """

    def __init__(self, shared_state: SharedState):
        super().__init__()
        self.shared_state = shared_state
        self.setFormatter(
            logging.Formatter(
                "%(asctime)s : %(levelname)-8s : (%(name)s) %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            log_entry = {
                "timestamp": time.time(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                "formatted": self.format(record),
            }
            self.shared_state.add_log(log_entry)
        except Exception:
            self.handleError(record)


def create_app(shared_state: Optional[SharedState] = None) -> FastAPI:
    """Create the FastAPI application."""
    if shared_state is None:
        shared_state = get_shared_state()

    app = FastAPI(
        title="Switchboard Inspection API",
        description="Application state, token feeding and log streaming for Switchboard",
        version="1.0.0",
    )

    def require_application() -> "Application":
        if shared_state.application is None:
            raise HTTPException(status_code=503, detail="No application is running")
        return shared_state.application

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/application")
    async def get_application():
        """Declarative description of the running application."""
        return require_application().export()

    @app.get("/api/sheets")
    async def get_sheets():
        application = require_application()
        return {"sheets": application.sheet_list(), "current": application.current_sheet}

    @app.get("/api/controller")
    async def get_controller():
        """Controller type and, for statemachines, its state and tokens."""
        controller = require_application().controller
        if controller is None:
            raise HTTPException(status_code=409, detail="Application has not been started")

        info = {"type": type(controller).__name__}
        for attr in ("current_state", "initial", "final", "tokens"):
            if hasattr(controller, attr):
                info[attr] = getattr(controller, attr)
        return info

    @app.post("/api/tokens/{token}")
    async def feed_token(token: str):
        """Feed a token to the controller."""
        application = require_application()
        if application.controller is None:
            raise HTTPException(status_code=409, detail="Application has not been started")

        try:
            invoke(application.controller, "set_token", [token])
        except WiringError as e:
            raise HTTPException(status_code=400, detail=str(e))

        return {
            "token": token,
            "current_state": getattr(application.controller, "current_state", None),
            "current_sheet": application.current_sheet,
        }

    @app.get("/api/logs/stream")
    async def stream_logs(request: Request):
        """SSE endpoint for real-time log streaming."""

        async def event_generator():
            last_index = 0

            while True:
                # Check if client disconnected
                if await request.is_disconnected():
                    break

                logs, last_index = shared_state.read_logs(last_index)
                for log_entry in logs:
                    yield {
                        "event": "message",
                        "data": json.dumps(log_entry),
                    }

                await asyncio.sleep(0.1)  # Poll every 100ms

        return EventSourceResponse(event_generator())

    return app
