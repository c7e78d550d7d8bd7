import json
import os
from typing import Optional

import google.auth
from google.auth.transport import requests as ga_requests
from google.oauth2 import service_account

from .exceptions import CredentialFormatError
from .logging import jlog

PUBSUB_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


def _read_key_file(json_key_file: str) -> dict:
    path = os.path.abspath(os.path.expanduser(json_key_file))
    try:
        with open(path, "r", encoding="utf-8") as f:
            key_json = json.load(f)
    except json.JSONDecodeError as e:
        raise CredentialFormatError(f"Invalid JSON credentials data in {path}: {e}") from e
    if not isinstance(key_json, dict):
        raise CredentialFormatError(f"Invalid JSON credentials data in {path}")
    if not key_json.get("client_email") or not key_json.get("private_key"):
        raise CredentialFormatError("Invalid JSON credentials data: client_email and private_key are required")
    return key_json

def load_credentials(json_key_file: Optional[str] = None):
    """
    Service-account key when json_key_file is given, otherwise Application
    Default Credentials (metadata server on GCE/Cloud Run, gcloud ADC locally).
    No token is fetched here.
    """
    if json_key_file:
        jlog(event="auth_json_key", severity="DEBUG", json_key_file=json_key_file)
        key_json = _read_key_file(json_key_file)
        key_json.setdefault("token_uri", DEFAULT_TOKEN_URI)
        try:
            credentials = service_account.Credentials.from_service_account_info(key_json, scopes=PUBSUB_SCOPES)
        except (ValueError, KeyError) as e:
            raise CredentialFormatError(f"Unable to load service account key: {e}") from e
        jlog(event="auth_json_key_ready", severity="DEBUG", client_email=key_json["client_email"])
        return credentials

    jlog(event="auth_default_credentials", severity="DEBUG")
    credentials, _ = google.auth.default(scopes=PUBSUB_SCOPES)
    return credentials


class CredentialClient:
    """Owns the credentials for the adapter's lifetime; the only mutation is token refresh."""

    def __init__(self, credentials):
        self.credentials = credentials
        self.refresh_count = 0

    @property
    def valid(self) -> bool:
        return bool(self.credentials.valid)

    @property
    def token(self) -> Optional[str]:
        return self.credentials.token

    def refresh(self) -> None:
        jlog(event="authorizing", severity="DEBUG")
        self.credentials.refresh(ga_requests.Request())
        self.refresh_count += 1
        jlog(event="authorized", severity="DEBUG")
