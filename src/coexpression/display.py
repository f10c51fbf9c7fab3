"""
Narrative method display documents.

A `display.yaml` describes how a service method is presented in the
workbench: a name, tooltip, icon, suggested follow-up methods and a label
plus hints for every parameter. This module only loads and validates the
document; rendering happens elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from coexpression.errors import ConfigError


class DisplayError(ConfigError):
    """Raised when a method display document is missing or malformed."""


@dataclass
class ParameterDisplay:
    ui_name: str
    short_hint: Optional[str] = None
    long_hint: Optional[str] = None


@dataclass
class MethodDisplay:
    name: str
    tooltip: Optional[str] = None
    icon: Optional[str] = None
    screenshots: List[str] = field(default_factory=list)
    related: List[str] = field(default_factory=list)
    next: List[str] = field(default_factory=list)
    parameters: Dict[str, ParameterDisplay] = field(default_factory=dict)
    description: Optional[str] = None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _str_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DisplayError(f"'{key}' must be a list.")
    return [str(v) for v in value]


def _coerce_parameters(section: Any) -> Dict[str, ParameterDisplay]:
    if not section:
        return {}
    if not isinstance(section, dict):
        raise DisplayError("'parameters' must be a mapping of parameter id to display info.")

    params: Dict[str, ParameterDisplay] = {}
    for pid, item in section.items():
        if not isinstance(item, dict):
            raise DisplayError(f"Parameter '{pid}' must be a mapping.")
        ui_name = _text(item.get("ui-name"))
        if ui_name is None:
            raise DisplayError(f"Parameter '{pid}' is missing 'ui-name'.")
        params[str(pid)] = ParameterDisplay(
            ui_name=ui_name,
            short_hint=_text(item.get("short-hint")),
            long_hint=_text(item.get("long-hint")),
        )
    return params


def parse_method_display(data: Any) -> MethodDisplay:
    if not isinstance(data, dict):
        raise DisplayError("Display document must be a YAML mapping/object.")

    name = _text(data.get("name"))
    if name is None:
        raise DisplayError("Display document is missing 'name'.")

    suggestions = data.get("method-suggestions") or {}
    if not isinstance(suggestions, dict):
        raise DisplayError("'method-suggestions' must be a mapping.")

    return MethodDisplay(
        name=name,
        tooltip=_text(data.get("tooltip")),
        icon=_text(data.get("icon")),
        screenshots=_str_list(data.get("screenshots"), "screenshots"),
        related=_str_list(suggestions.get("related"), "method-suggestions.related"),
        next=_str_list(suggestions.get("next"), "method-suggestions.next"),
        parameters=_coerce_parameters(data.get("parameters")),
        description=_text(data.get("description")),
    )


def load_method_display(path: Path) -> MethodDisplay:
    path = Path(path)
    if not path.exists():
        raise DisplayError(f"Display document not found at '{path}'.")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise DisplayError(f"Failed to parse display YAML at '{path}': {exc}") from exc
    return parse_method_display(data)


__all__ = [
    "DisplayError",
    "ParameterDisplay",
    "MethodDisplay",
    "parse_method_display",
    "load_method_display",
]
