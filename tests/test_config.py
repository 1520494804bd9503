"""Tests for Settings configuration model."""

from pathlib import Path

import pytest

from dailies.config import Settings


class TestDefaults:
    def test_default_database_path(self):
        s = Settings()
        assert s.database_path == Path("data/dailies.db")

    def test_default_scheduler_timezone(self):
        s = Settings()
        assert s.scheduler_timezone == "UTC"

    def test_default_reset_interval(self):
        s = Settings()
        assert s.reset_interval_seconds == 60

    def test_default_keepalive(self):
        s = Settings()
        assert s.ws_ping_interval == 54
        assert s.ws_read_timeout == 60

    def test_default_port(self):
        s = Settings()
        assert s.server_port == 8080


class TestValidation:
    def test_accepts_iana_timezone(self):
        s = Settings(scheduler_timezone="America/Denver")
        assert s.scheduler_timezone == "America/Denver"

    def test_rejects_unknown_timezone(self):
        with pytest.raises(ValueError, match="invalid timezone"):
            Settings(scheduler_timezone="Mars/Olympus_Mons")

    def test_read_timeout_must_exceed_ping_interval(self):
        with pytest.raises(ValueError, match="ws_read_timeout"):
            Settings(ws_ping_interval=60, ws_read_timeout=30)

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            Settings(reset_interval_seconds=0)


class TestExtraForbidden:
    def test_unknown_env_var_raises(self):
        with pytest.raises(ValueError, match="extra_forbidden"):
            Settings(**{"nonexistent_field": "value"})
