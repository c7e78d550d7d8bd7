import threading
from typing import Any, Optional

import httpx
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .auth import CredentialClient, load_credentials
from .client import PubsubClient
from .config import Settings
from .exceptions import PublishError
from .logging import jlog
from .payload import build_message

tracer = trace.get_tracer("pubsub_output.publish")


def _event_message(event: Any) -> Any:
    getter = getattr(event, "get", None)
    if callable(getter):
        return getter("message")
    return getattr(event, "message", None)


class PubsubOutput:
    """
    Publishes log events to a Pub/Sub topic, one at a time.

    Lifecycle: start() once (alias register), then send(event) per event
    (alias receive), then stop(). Publish failures are logged and the event
    is dropped; payload failures are logged and re-raised.
    """

    def __init__(
        self,
        settings: Settings,
        credentials: Optional[CredentialClient] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.settings = settings
        self.topic = settings.full_topic
        self.credentials = credentials
        self._http = http_client
        self._owns_http = http_client is None
        self._client: Optional[PubsubClient] = None
        self._lock = threading.Lock()

    @property
    def started(self) -> bool:
        return self._client is not None

    def start(self) -> None:
        jlog(
            event="register",
            severity="DEBUG",
            project_id=self.settings.project_id,
            topic=self.topic,
        )
        if self.credentials is None:
            self.credentials = CredentialClient(load_credentials(self.settings.json_key_file))
        if self._http is None:
            self._http = httpx.Client(timeout=self.settings.pubsub_publish_timeout_s)
        self._client = PubsubClient(self.settings, self.credentials, self._http)
        jlog(event="registered", topic=self.topic)

    register = start

    def send(self, event: Any) -> None:
        if self._client is None:
            raise RuntimeError("PubsubOutput.send() called before start()")

        with self._lock, tracer.start_as_current_span("pubsub.publish") as span:
            span.set_attribute("pubsub.topic", self.topic)
            message_text = _event_message(event)
            jlog(event="event_received", severity="DEBUG", message=message_text)

            try:
                message = build_message(
                    event,
                    exclude_fields=self.settings.exclude_fields,
                    include_fields=self.settings.include_fields,
                    include_field=self.settings.include_field,
                )
            except Exception as e:
                jlog(event="payload_failed", severity="ERROR", error=str(e), topic=self.topic)
                raise

            try:
                result = self._client.publish([message])
            except PublishError as e:
                span.set_attribute("pubsub.status", e.status or 0)
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                jlog(
                    event="publish_failed",
                    severity="ERROR",
                    message=message_text,
                    topic=self.topic,
                    status=e.status,
                    error=e.error_message or str(e),
                )
                return

            if result.messageIds:
                jlog(event="message_published", topic=self.topic, message_ids=result.messageIds)

    receive = send

    def stop(self) -> None:
        if self._owns_http and self._http is not None:
            self._http.close()
            self._http = None
        self._client = None

    close = stop
