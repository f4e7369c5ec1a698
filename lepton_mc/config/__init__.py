"""Configuration module: enums, defaults and YAML settings."""

from lepton_mc.config.enums import Event, Scheme, DecayMode, RangePolicy
from lepton_mc.config.loader import load_settings

__all__ = ["Event", "Scheme", "DecayMode", "RangePolicy", "load_settings"]
