import dataclasses
import json
from enum import Enum


def _default(value):
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def safe_json_dumps(payload, *, sort_keys=False):
    """Serialize ``payload`` to JSON, stringifying anything json cannot encode."""
    return json.dumps(payload, default=_default, ensure_ascii=False, sort_keys=sort_keys)
