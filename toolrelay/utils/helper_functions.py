import importlib.resources as pkg_resources
from typing import Any, Dict, List, Optional

JsonObject = Dict[str, Any]


def as_record(value: Any) -> Optional[JsonObject]:
    """Return the value if it is a JSON object (dict), otherwise None."""
    return value if isinstance(value, dict) else None


def as_string(value: Any) -> Optional[str]:
    """
    Return the trimmed string, or None when the value is not a string or is blank.
    """
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed if trimmed else None


def to_string_list(value: Any) -> List[str]:
    """Keep only the non-blank string entries of a list, trimmed."""
    if not isinstance(value, list):
        return []
    items = (as_string(item) for item in value)
    return [item for item in items if item is not None]


def records(value: Any) -> List[JsonObject]:
    """Keep only the object entries of a list."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def get_package_directory():
    return pkg_resources.files("toolrelay")
