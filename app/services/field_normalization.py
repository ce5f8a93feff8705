# File: app/services/field_normalization.py
import re
from typing import Any, Dict, Iterable, Optional

EMAIL_KEYS = ("email", "email_address", "emailaddress", "contact_email", "contactemail")
RAW_FORM_KEY = "_rawForm"

_SEPARATORS = re.compile(r"[\s\-]+")
_INVALID = re.compile(r"[^a-z0-9_]")


def normalize_field_name(key: Any) -> str:
    """Turn a free-text form label into a stable snake_case key.

    Returns an empty string when nothing usable is left.
    """
    name = str(key if key is not None else "").strip().lower()
    name = _SEPARATORS.sub("_", name)
    name = _INVALID.sub("", name)
    if name and name[0].isdigit():
        name = f"f_{name}"
    return name


def normalize_and_filter(
    raw: Optional[Dict[str, Any]],
    whitelist: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        return {}

    result: Dict[str, Any] = {}
    for key, value in raw.items():
        if key == RAW_FORM_KEY:
            continue
        name = normalize_field_name(key)
        if name:
            result[name] = value

    nested = raw.get(RAW_FORM_KEY)
    if isinstance(nested, dict):
        for key, value in nested.items():
            name = normalize_field_name(key)
            if name and name not in result:
                result[name] = value

    if whitelist:
        allowed = {normalize_field_name(w) for w in whitelist}
        allowed.discard("")
        if allowed:
            result = {k: v for k, v in result.items() if k in allowed}

    return result


def extract_email(fields: Dict[str, Any]) -> Optional[str]:
    for key in EMAIL_KEYS:
        value = fields.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip().lower()
    return None
