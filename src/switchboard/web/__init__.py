"""
Switchboard Web - FastAPI inspection API and log streaming.
"""

from .app import SharedState, WebLogHandler, create_app, get_shared_state

__all__ = ["create_app", "get_shared_state", "SharedState", "WebLogHandler"]
