"""Test configuration utilities and shared fixtures."""

import sys
from pathlib import Path

# Ensure the ``src`` directory is importable when tests are executed without an
# editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import httpx  # noqa: E402
import pytest  # noqa: E402
from flask import Flask  # noqa: E402
from flask.testing import FlaskClient  # noqa: E402

from reelin.backend.app import create_app  # noqa: E402
from reelin.backend.app.services.submission_store import (  # noqa: E402
    InMemorySubmissionRepository,
)


@pytest.fixture()
def app(monkeypatch: pytest.MonkeyPatch) -> Flask:
    """Return a configured Flask application for integration tests."""

    monkeypatch.delenv("REELIN_SUBMISSION_DB", raising=False)
    monkeypatch.delenv("REELIN_DEMO_MODE", raising=False)

    application = create_app()
    application.config.update(TESTING=True)
    application.extensions["reelin.submissions"] = InMemorySubmissionRepository()
    return application


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Provide a test client bound to the configured Flask app."""

    return app.test_client()


class RecordingTransport(httpx.MockTransport):
    """Mock transport that keeps every request it answered."""

    def __init__(self, handler) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture()
def recording_transport():
    """Factory building an ``httpx.Client`` backed by a recording transport."""

    def _build(handler) -> tuple[httpx.Client, RecordingTransport]:
        transport = RecordingTransport(handler)
        return httpx.Client(transport=transport), transport

    return _build
