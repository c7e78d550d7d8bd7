import json
import logging
import os

# Settings() is built at import time in main; tracing must not reach Cloud Trace
os.environ.setdefault("PROJECT_ID", "test-project")
os.environ.setdefault("TOPIC", "test-topic")
os.environ.setdefault("USE_CLOUD_TRACE", "false")

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from services.pubsub_output.src.auth import CredentialClient
from services.pubsub_output.src.config import Settings


class FakeCredentials:
    """Stands in for google.auth credentials; refresh() mints a new token."""

    def __init__(self, token="token-0", valid=True, refresh_error=None):
        self.token = token if valid else None
        self.valid = valid
        self.refresh_error = refresh_error
        self.refreshes = 0

    def refresh(self, request):
        if self.refresh_error is not None:
            raise self.refresh_error
        self.refreshes += 1
        self.token = f"token-{self.refreshes}"
        self.valid = True


class RecordingTransport:
    """
    httpx.MockTransport wrapper. Each queued item is either an httpx.Response
    or an exception instance to raise; the last item repeats once exhausted.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [httpx.Response(200, json={"messageIds": ["1"]})]
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        # fresh copy so a repeated outcome is never bound to two requests
        return httpx.Response(outcome.status_code, headers=outcome.headers, content=outcome.content)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def bodies(self):
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def make_settings():
    def _make(**overrides):
        values = {
            "project_id": "my-project",
            "topic": "logs",
            "pubsub_backoff_base_ms": 1,
            "pubsub_backoff_cap_ms": 1,
            "pubsub_retry_budget_s": 5.0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make

@pytest.fixture
def fake_credentials():
    return FakeCredentials()

@pytest.fixture
def credential_client(fake_credentials):
    return CredentialClient(fake_credentials)

@pytest.fixture
def log_events(caplog):
    caplog.set_level(logging.DEBUG)

    def _events(name=None):
        records = []
        for r in caplog.records:
            try:
                data = json.loads(r.getMessage())
            except ValueError:
                continue
            if isinstance(data, dict) and (name is None or data.get("event") == name):
                records.append(data)
        return records
    return _events

@pytest.fixture(scope="session")
def private_key_pem():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")

@pytest.fixture
def write_key_file(tmp_path):
    def _write(data, name="key.json"):
        path = tmp_path / name
        path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
        return path
    return _write
