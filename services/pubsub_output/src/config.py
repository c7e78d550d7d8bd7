from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

# -----------------------
# Settings and constants
# -----------------------

class Settings(BaseSettings):

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    # Topic
    project_id: str
    topic: str

    # Field selection (include_field wins over both lists; exclude wins over include)
    exclude_fields: List[str] = []
    include_fields: List[str] = []
    include_field: Optional[str] = None

    # Auth: service-account key, or Application Default Credentials when unset
    json_key_file: Optional[str] = None

    # Pub/Sub REST tuning
    pubsub_api_endpoint: str = "https://pubsub.googleapis.com"
    pubsub_publish_timeout_s: float = 10.0
    pubsub_max_retries: int = 5
    pubsub_retry_budget_s: float = 60.0
    pubsub_backoff_base_ms: int = 100
    pubsub_backoff_cap_ms: int = 5000

    # Identity
    service_name: str = "pubsub-output"
    application_name: str = "pubsub-output"
    application_version: str = "1.0.0"

    @field_validator("include_field", "json_key_file", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def full_topic(self) -> str:
        return f"projects/{self.project_id}/topics/{self.topic}"
