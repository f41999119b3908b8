"""Conversion configuration (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from . import constants


@dataclass(frozen=True)
class ConvertConfig:
    """Groups the knobs of a conversion run."""

    temp_prefix: str = constants.DEFAULT_TEMP_PREFIX
    validate_members: bool = True


DEFAULT_CONFIG = ConvertConfig()
