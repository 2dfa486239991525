"""Tests for the command line runner."""

import asyncio
import json
import logging
from pathlib import Path

from switchboard.core.config import EnvSettings, RuntimeConfig
from switchboard.main import run

FIXTURES = Path(__file__).parent / "fixtures"
APPLICATION = FIXTURES / "application.json"


def make_config():
    return RuntimeConfig(env=EnvSettings.model_construct(resource_root=str(FIXTURES)))


class TestRun:
    def test_tokens_drive_application_to_termination(self, caplog):
        caplog.set_level(logging.INFO)
        code = asyncio.run(run(str(APPLICATION), make_config(), ["next", "stop"]))

        assert code == 0
        assert "Switching to sheet 'done'" in caplog.text
        assert "Application finished" in caplog.text

    def test_stops_when_tokens_are_consumed(self, caplog):
        caplog.set_level(logging.INFO)
        code = asyncio.run(run(str(APPLICATION), make_config(), ["next"]))

        assert code == 0
        assert "Tokens consumed, stopping in sheet 'busy'" in caplog.text
        assert "Application finished" not in caplog.text

    def test_missing_controller(self, tmp_path, caplog):
        with open(APPLICATION, "r", encoding="utf-8") as fp:
            description = json.load(fp)
        description["controller"] = "ghost"
        path = tmp_path / "application.json"
        path.write_text(json.dumps(description), encoding="utf-8")

        code = asyncio.run(run(str(path), make_config(), ["next"]))

        assert code == 1
        assert "Application failed to start" in caplog.text
