"""Safe JSON and YAML rendering of hardware information."""

from __future__ import annotations

import dataclasses
import enum
import json
from typing import Any, Callable

import yaml

from hwscan.option import env_or_default_alerter

Warner = Callable[..., None]


def _default_warn(msg: str, *args) -> None:
    env_or_default_alerter()(msg % args if args else msg)


def _to_jsonable(obj: Any) -> Any:
    """Fallback conversion for objects the json module does not know."""
    to_json = getattr(obj, "to_json", None)
    if callable(to_json):
        return to_json()
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, enum.Enum):
        return obj.value
    raise TypeError(f"object of type {type(obj).__name__} is not JSON serializable")


def safe_json(data: Any, indent: bool = False, warn: Warner | None = None) -> str:
    """Render ``data`` as JSON, or return "" after warning on failure."""
    warn = warn or _default_warn
    try:
        if indent:
            return json.dumps(data, default=_to_jsonable, indent=2)
        return json.dumps(data, default=_to_jsonable, separators=(",", ":"))
    except (TypeError, ValueError) as err:
        warn("error marshalling JSON: %s", err)
        return ""


def safe_yaml(data: Any, warn: Warner | None = None) -> str:
    """Render ``data`` as YAML via its JSON form, or return "" on failure."""
    warn = warn or _default_warn
    try:
        encoded = json.dumps(data, default=_to_jsonable)
    except (TypeError, ValueError) as err:
        warn("error marshalling JSON: %s", err)
        return ""
    try:
        obj = json.loads(encoded)
    except ValueError as err:
        warn("error converting JSON to YAML: %s", err)
        return ""
    try:
        return yaml.safe_dump(obj, default_flow_style=False, sort_keys=True)
    except yaml.YAMLError as err:
        warn("error marshalling YAML: %s", err)
        return ""