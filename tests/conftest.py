from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI
from loguru import logger

from baseserver.composition import create_app
from baseserver.config.settings import Settings
from baseserver.core.supervisor import reset_process_supervisor


@pytest.fixture()
def log_records() -> list[dict[str, Any]]:
    """Loguru records emitted while the test runs."""
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG", format="{message}")
    yield records
    logger.remove(handler_id)


def audit_records(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [r for r in records if r["extra"].get("audit") is True]


def records_at(records: list[dict[str, Any]], level: str) -> list[dict[str, Any]]:
    return [r for r in records if r["level"].name == level]


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture()
def make_app(settings):
    def _make(app_name: str = "test-app", **overrides: Any) -> FastAPI:
        _settings = settings.model_copy(update=overrides) if overrides else settings
        return create_app(app_name, logger, _settings)

    return _make


@pytest.fixture()
def test_app(make_app) -> FastAPI:
    return make_app()


@pytest.fixture(autouse=True)
def _clean_supervisor():
    yield
    reset_process_supervisor()
