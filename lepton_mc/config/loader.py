"""
YAML settings loader for transport contexts.

A settings file is a flat mapping of Context field names to values, e.g.:

    scheme: hybrid
    forward: false
    longitudinal: true
    event: [limit_kinetic, medium]
    kinetic_limit: 1.0E+03

Usage:
    from lepton_mc.config.loader import load_settings
    context.configure(**load_settings("backward.yaml"))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from lepton_mc.config.enums import DecayMode, Event, RangePolicy, Scheme
from lepton_mc.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

_FLOAT_FIELDS = (
    "kinetic_limit",
    "distance_max",
    "grammage_max",
    "time_max",
    "weight_limit",
    "accuracy",
    "domain_extent",
)
_BOOL_FIELDS = ("forward", "longitudinal")
_ENUM_FIELDS = {
    "scheme": Scheme,
    "decay": DecayMode,
    "range_policy": RangePolicy,
}


def _parse_event(value: Any) -> Event:
    """Convert an event name, a list of names or an integer to an Event."""
    if isinstance(value, int):
        return Event(value)
    if isinstance(value, str):
        value = [value]
    event = Event.NONE
    for name in value:
        try:
            event |= Event[str(name).upper()]
        except KeyError:
            raise ConfigurationError(f"Unknown event '{name}'") from None
    return event


def parse_settings(raw: dict[str, Any]) -> dict[str, Any]:
    """Convert a raw mapping (as read from YAML) to Context keyword arguments.

    Raises:
        ConfigurationError: On unknown keys or values
    """
    settings: dict[str, Any] = {}
    for key, value in raw.items():
        if key in _FLOAT_FIELDS:
            settings[key] = float(value)
        elif key in _BOOL_FIELDS:
            settings[key] = bool(value)
        elif key in _ENUM_FIELDS:
            enum = _ENUM_FIELDS[key]
            try:
                settings[key] = enum(str(value).lower())
            except ValueError:
                raise ConfigurationError(
                    f"Invalid value '{value}' for '{key}'. "
                    f"Available: {[e.value for e in enum]}"
                ) from None
        elif key == "event":
            settings[key] = _parse_event(value)
        elif key == "event_priority":
            settings[key] = tuple(_parse_event(name) for name in value)
        else:
            raise ConfigurationError(f"Unknown setting '{key}'")
    return settings


def load_settings(path: str | Path) -> dict[str, Any]:
    """Load Context settings from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Dictionary of keyword arguments for Context.configure
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path}: expected a mapping of settings")

    settings = parse_settings(raw)
    logger.debug("Loaded %d setting(s) from %s", len(settings), path)
    return settings
