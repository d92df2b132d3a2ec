"""Settings tests."""

import pytest
from pydantic import ValidationError

from campusgate.config import Settings


def test_default_secret_refused_outside_development():
    with pytest.raises(ValidationError):
        Settings(environment="production")


def test_custom_secret_allowed_in_production():
    s = Settings(environment="production", jwt_secret="x" * 40)
    assert s.jwt_secret == "x" * 40
    assert s.admin_room == "admin-dashboard"


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("CAMPUSGATE_ADMIN_ROOM", "staff-dashboard")
    assert Settings().admin_room == "staff-dashboard"
