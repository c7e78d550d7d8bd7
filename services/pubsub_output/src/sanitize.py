import hashlib
import re
from typing import Any

SENSITIVE_KEYS = {
    "authorization", "private_key", "private_key_id", "token", "access_token",
    "refresh_token", "id_token", "password", "secret", "api_key",
}

# secrets that can show up inside free text (server error bodies, exception strings)
_BEARER = re.compile(r"(?i)\b(bearer)\s+[A-Za-z0-9\-._~+/]+=*")
_PEM_KEY = re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----", re.S)
_TOKEN_PARAM = re.compile(r"""(?i)(["']?(?:access_token|refresh_token|id_token|assertion)["']?\s*[:=]\s*["']?)[^"'&,\s}]+""")

REDACTED = "<redacted>"

def hash_preview(s: str, n: int = 12) -> str:
    if not isinstance(s, str):
        s = str(s)
    return f"sha256={hashlib.sha256(s.encode('utf-8')).hexdigest()[:n]},len={len(s)}"

def redact_text(text: str) -> str:
    text = _PEM_KEY.sub(REDACTED, text)
    text = _BEARER.sub(lambda m: f"{m.group(1)} {REDACTED}", text)
    return _TOKEN_PARAM.sub(lambda m: f"{m.group(1)}{REDACTED}", text)

def sanitize_value(key: str, value: Any) -> Any:
    k = (key or "").lower()
    if k in SENSITIVE_KEYS and value is not None:
        # Never log raw; return only hash/length
        return hash_preview(str(value))
    if isinstance(value, (bytes, bytearray)):
        return f"bytes:{len(value)}"
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, dict):
        return {k: sanitize_value(k, v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_value("", v) for v in value]
    return value
