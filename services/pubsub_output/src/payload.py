import base64
import json
from typing import Any, Dict, Iterable, Mapping, Optional

from .exceptions import PayloadError
from .schemas import PubsubMessage


def event_to_mapping(event: Any) -> Dict[str, Any]:
    """
    JSON projection of an event: a fresh dict of field -> JSON value.
    Accepts a mapping, a pydantic model, or anything with to_dict().
    """
    if hasattr(event, "model_dump"):
        raw = event.model_dump(mode="json")
    elif hasattr(event, "to_dict"):
        raw = event.to_dict()
    elif isinstance(event, Mapping):
        raw = dict(event)
    else:
        raise PayloadError(f"Unsupported event type: {type(event).__name__}")

    try:
        # round trip so the caller's event is never shared or mutated
        data = json.loads(json.dumps(raw, default=str))
    except (TypeError, ValueError) as e:
        raise PayloadError(f"Event is not JSON serializable: {e}") from e
    if not isinstance(data, dict):
        raise PayloadError("Event must serialize to a JSON object")
    return data

def select_fields(
    mapping: Mapping[str, Any],
    exclude_fields: Iterable[str] = (),
    include_fields: Iterable[str] = (),
) -> Dict[str, Any]:
    """Drop excluded fields, then keep only included ones (if any were named)."""
    excluded = set(exclude_fields)
    remaining = {k: v for k, v in mapping.items() if k not in excluded}
    wanted = set(include_fields)
    if not wanted:
        return remaining
    return {k: v for k, v in remaining.items() if k in wanted}

def render_json(mapping: Mapping[str, Any]) -> str:
    return json.dumps(mapping, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

def render_field(mapping: Mapping[str, Any], name: str) -> str:
    if name not in mapping:
        raise PayloadError(f"Field '{name}' not present in event")
    value = mapping[name]
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

def encode_data(text: str) -> bytes:
    return base64.urlsafe_b64encode(text.encode("utf-8"))

def build_payload(
    event: Any,
    exclude_fields: Iterable[str] = (),
    include_fields: Iterable[str] = (),
    include_field: Optional[str] = None,
) -> bytes:
    mapping = event_to_mapping(event)
    if include_field:
        # single-field mode ignores both lists
        return encode_data(render_field(mapping, include_field))
    return encode_data(render_json(select_fields(mapping, exclude_fields, include_fields)))

def build_message(
    event: Any,
    exclude_fields: Iterable[str] = (),
    include_fields: Iterable[str] = (),
    include_field: Optional[str] = None,
) -> PubsubMessage:
    data = build_payload(event, exclude_fields, include_fields, include_field)
    return PubsubMessage(data=data.decode("ascii"))
