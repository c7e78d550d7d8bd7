from typing import List

import httpx
from google.auth import exceptions as auth_exceptions
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_random_exponential,
)

from .auth import CredentialClient
from .config import Settings
from .exceptions import PublishError, TransientAuthError, TransientError, TransientTimeoutError
from .logging import jlog
from .schemas import ErrorEnvelope, PublishRequest, PublishResponse, PubsubMessage


def _safe_text(resp: httpx.Response) -> str:
    try:
        return resp.text[:2048]
    except Exception:
        return "<no-text>"

def _error_message(resp: httpx.Response) -> str:
    # Google APIs answer {"error": {"code", "message", "status"}}
    try:
        envelope = ErrorEnvelope.model_validate(resp.json())
        if envelope.error.message:
            return envelope.error.message
    except ValueError:
        pass
    return _safe_text(resp)


class PubsubClient:
    """
    Pub/Sub REST publisher: POST /v1/{topic}:publish.
    - no valid token -> refresh before sending.
    - 401 -> refresh credentials, retry right away.
    - transport timeout -> retry with full-jitter exponential backoff.
    - everything else -> PublishError, no retry.
    """

    def __init__(self, settings: Settings, credentials: CredentialClient, http: httpx.Client):
        self.settings = settings
        self.credentials = credentials
        self.http = http
        self.topic = settings.full_topic
        self.url = f"{settings.pubsub_api_endpoint.rstrip('/')}/v1/{self.topic}:publish"
        self.user_agent = f"{settings.application_name}/{settings.application_version}"
        self.attempts = 0

        backoff_base_s = max(0.01, settings.pubsub_backoff_base_ms / 1000.0)
        backoff_cap_s = max(backoff_base_s, settings.pubsub_backoff_cap_ms / 1000.0)
        self._backoff = wait_random_exponential(multiplier=backoff_base_s, max=backoff_cap_s)

    def _wait(self, retry_state) -> float:
        # a fresh token makes the next attempt worth sending immediately
        if retry_state.outcome and isinstance(retry_state.outcome.exception(), TransientAuthError):
            return 0.0
        return self._backoff(retry_state)

    def _before_sleep_log(self, retry_state) -> None:
        err = None
        if retry_state.outcome and retry_state.outcome.failed:
            err = str(retry_state.outcome.exception())
        jlog(
            event="publish_retry",
            severity="DEBUG",
            attempt=retry_state.attempt_number,
            wait_s=getattr(getattr(retry_state, "next_action", None), "sleep", None),
            error=err,
            topic=self.topic,
        )

    def _refresh(self) -> None:
        try:
            self.credentials.refresh()
        except (auth_exceptions.RefreshError, auth_exceptions.TransportError) as e:
            raise PublishError(f"token refresh failed: {e}", error_message=str(e)) from e

    def _send_once(self, body: dict) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.credentials.token}",
            "User-Agent": self.user_agent,
        }
        self.attempts += 1
        jlog(event="publish_request", severity="DEBUG", topic=self.topic, attempt=self.attempts)
        try:
            resp = self.http.post(self.url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise TransientTimeoutError(f"pubsub request timeout: {e}") from e
        except httpx.HTTPError as e:
            # connection refused, DNS, protocol errors: not retried
            raise PublishError(f"pubsub transport error: {e}", error_message=str(e)) from e

        if resp.status_code == 401:
            raise TransientAuthError(f"pubsub 401: {_error_message(resp)}", status=401)
        return resp

    def _attempt(self, body: dict) -> httpx.Response:
        # missing or expired token is fetched up front and costs no attempt
        if not self.credentials.valid:
            self._refresh()
        try:
            return self._send_once(body)
        except TransientAuthError:
            self._refresh()
            raise

    def publish(self, messages: List[PubsubMessage]) -> PublishResponse:
        body = PublishRequest(messages=messages).model_dump()

        max_attempts = max(1, self.settings.pubsub_max_retries + 1)  # first try + retries
        stop = (stop_after_attempt(max_attempts) | stop_after_delay(self.settings.pubsub_retry_budget_s))

        try:
            for attempt in Retrying(
                retry=retry_if_exception_type(TransientError),
                stop=stop,
                wait=self._wait,
                reraise=True,
                before_sleep=self._before_sleep_log,
            ):
                with attempt:
                    resp = self._attempt(body)
        except TransientError as e:
            raise PublishError(f"retries exhausted: {e}", status=e.status, error_message=str(e)) from e

        if resp.status_code >= 300:
            message = _error_message(resp)
            raise PublishError(
                f"pubsub {resp.status_code}: {message}",
                status=resp.status_code,
                error_message=message,
            )

        try:
            return PublishResponse.model_validate(resp.json())
        except ValueError:
            return PublishResponse()
