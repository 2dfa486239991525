"""Tests for the inspection API."""

import asyncio
import json
import logging
from pathlib import Path

from fastapi.testclient import TestClient

from switchboard.core.application import Application
from switchboard.core.config import EnvSettings, RuntimeConfig
from switchboard.web import SharedState, WebLogHandler, create_app

FIXTURES = Path(__file__).parent / "fixtures"


def started_application():
    with open(FIXTURES / "application.json", "r", encoding="utf-8") as fp:
        description = json.load(fp)
    config = RuntimeConfig(env=EnvSettings.model_construct(resource_root=str(FIXTURES)))
    application = Application(description, config=config)

    async def start():
        await application.start()
        await application.settle()

    asyncio.run(start())
    return application


class TestWithoutApplication:
    def test_health(self):
        client = TestClient(create_app(SharedState()))
        assert client.get("/health").json() == {"status": "ok"}

    def test_no_application(self):
        client = TestClient(create_app(SharedState()))
        assert client.get("/api/application").status_code == 503
        assert client.post("/api/tokens/next").status_code == 503

    def test_not_started(self):
        state = SharedState(application=Application(config=RuntimeConfig()))
        client = TestClient(create_app(state))
        assert client.get("/api/controller").status_code == 409
        assert client.post("/api/tokens/next").status_code == 409


class TestWithApplication:
    """Test the endpoints against a started application."""

    def setup_method(self):
        self.application = started_application()
        self.client = TestClient(create_app(SharedState(application=self.application)))

    def test_application_description(self):
        body = self.client.get("/api/application").json()
        assert body["controller"] == "machine"
        assert sorted(body["sheets"]) == ["busy", "done", "idle"]

    def test_sheets(self):
        body = self.client.get("/api/sheets").json()
        assert body["current"] == "idle"
        assert sorted(body["sheets"]) == ["busy", "done", "idle"]

    def test_controller(self):
        body = self.client.get("/api/controller").json()
        assert body["type"] == "Statemachine"
        assert body["current_state"] == "idle"
        assert body["final"] == "done"
        assert body["tokens"] == ["next", "stop"]

    def test_feed_token(self):
        body = self.client.post("/api/tokens/next").json()
        assert body["current_state"] == "busy"
        assert body["current_sheet"] == "busy"

    def test_unknown_token_is_ignored(self):
        body = self.client.post("/api/tokens/bogus").json()
        assert body["current_state"] == "idle"


class TestWebLogHandler:
    def test_records_are_buffered(self):
        state = SharedState()
        logger = logging.getLogger("switchboard.test_web")
        handler = WebLogHandler(state)
        logger.addHandler(handler)
        try:
            logger.warning("first")
            logger.warning("second")
        finally:
            logger.removeHandler(handler)

        logs = state.get_logs()
        assert [entry["message"] for entry in logs] == ["first", "second"]
        assert logs[0]["level"] == "WARNING"
        assert state.get_logs(1)[0]["message"] == "second"
        assert state.get_log_count() == 2


class TestLogBuffer:
    """Test that readers keep their place once the bounded buffer is full."""

    def test_record_after_full_buffer_is_delivered(self):
        state = SharedState(log_buffer=3)
        for i in range(3):
            state.add_log({"message": f"m{i}"})

        last = state.get_log_count()
        state.add_log({"message": "m3"})

        assert [entry["message"] for entry in state.get_logs(last)] == ["m3"]
        assert state.get_log_count() == 4

    def test_read_logs_returns_next_index(self):
        state = SharedState(log_buffer=2)
        logs, last = state.read_logs(0)
        assert logs == [] and last == 0

        for i in range(5):
            state.add_log({"message": f"m{i}"})
        logs, last = state.read_logs(last)
        # Evicted records are skipped
        assert [entry["message"] for entry in logs] == ["m3", "m4"]
        assert last == 5

        state.add_log({"message": "m5"})
        logs, last = state.read_logs(last)
        assert [entry["message"] for entry in logs] == ["m5"]
        assert last == 6

    def test_default_buffer_size(self):
        state = SharedState()
        for i in range(1001):
            state.add_log({"message": f"m{i}"})

        assert len(state.get_logs()) == 1000
        assert state.get_logs()[0]["message"] == "m1"
        assert state.get_logs(1000)[0]["message"] == "m1000"
