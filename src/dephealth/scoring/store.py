"""Process-wide scoring configuration store.

The store holds one ``ScoringConfig`` initialised to the defaults. Partial
updates are merged group by group (``weights``, ``boosters``, ``constants``,
``penalties``) so an update touching one field leaves every other field as
it was. Values are not validated here; validation happens when a
configuration file is loaded.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from dephealth.models.schemas import Penalties, ScoringConfig, ScoringConstants

logger = logging.getLogger(__name__)

# Fully enumerated defaults, usable as a configuration file template
DEFAULT_SCORING_CONFIG: dict[str, Any] = ScoringConfig().model_dump(mode="json")

_MAPPING_GROUPS = ("weights", "boosters")
_MODEL_GROUPS: dict[str, type[BaseModel]] = {
    "constants": ScoringConstants,
    "penalties": Penalties,
}


def field_lookup(model_cls: type[BaseModel]) -> dict[str, str]:
    """Map both snake_case field names and camelCase aliases to field names."""
    lookup = {}
    for name, info in model_cls.model_fields.items():
        lookup[name] = name
        if info.alias:
            lookup[info.alias] = name
    return lookup


def _as_partial(partial: Mapping[str, Any] | ScoringConfig | None) -> Mapping[str, Any]:
    if partial is None:
        return {}
    if isinstance(partial, ScoringConfig):
        return partial.model_dump(exclude_unset=True)
    return partial


def merge_scoring_config(
    base: ScoringConfig,
    partial: Mapping[str, Any] | ScoringConfig | None,
) -> ScoringConfig:
    """Merge a partial configuration onto ``base`` without mutating either.

    Args:
        base: Configuration to start from.
        partial: Mapping shaped like ``ScoringConfig`` with any subset of
            groups and fields. Field names may be snake_case or camelCase.

    Returns:
        A new ScoringConfig sharing no mutable state with ``base``.
    """
    merged = base.model_copy(deep=True)

    for group, value in _as_partial(partial).items():
        if value is None:
            continue

        if group in _MAPPING_GROUPS:
            if not isinstance(value, Mapping):
                logger.warning(f"Ignoring scoring group '{group}': expected a mapping")
                continue
            entries = dict(getattr(merged, group))
            entries.update(value)
            setattr(merged, group, entries)

        elif group in _MODEL_GROUPS:
            if isinstance(value, BaseModel):
                value = value.model_dump(exclude_unset=True)
            if not isinstance(value, Mapping):
                logger.warning(f"Ignoring scoring group '{group}': expected a mapping")
                continue
            lookup = field_lookup(_MODEL_GROUPS[group])
            update = {}
            for key, field_value in value.items():
                if key not in lookup:
                    logger.debug(f"Ignoring unknown {group} field '{key}'")
                    continue
                update[lookup[key]] = field_value
            setattr(merged, group, getattr(merged, group).model_copy(update=update))

        elif group == "scale":
            merged.scale = value

        else:
            logger.debug(f"Ignoring unknown scoring group '{group}'")

    return merged


class ScoringConfigStore:
    """Thread-safe holder for the active scoring configuration.

    Readers always get an independent copy, so a snapshot taken before a
    batch of scoring calls cannot change underneath them.
    """

    def __init__(self, config: ScoringConfig | None = None) -> None:
        self._lock = threading.Lock()
        self._config = config.model_copy(deep=True) if config else ScoringConfig()

    def get(self) -> ScoringConfig:
        """Return a copy of the current configuration."""
        with self._lock:
            return self._config.model_copy(deep=True)

    def set(self, partial: Mapping[str, Any] | ScoringConfig | None) -> ScoringConfig:
        """Merge a partial configuration onto the current one.

        Returns:
            A copy of the resulting configuration.
        """
        with self._lock:
            self._config = merge_scoring_config(self._config, partial)
            logger.debug(f"Scoring configuration updated: weights={self._config.weights}")
            return self._config.model_copy(deep=True)

    def reset(self) -> ScoringConfig:
        """Restore the built-in defaults, discarding every earlier update."""
        with self._lock:
            self._config = ScoringConfig()
            logger.debug("Scoring configuration reset to defaults")
            return self._config.model_copy(deep=True)


_store = ScoringConfigStore()


def get_scoring_config() -> ScoringConfig:
    """Return a copy of the process-wide scoring configuration."""
    return _store.get()


def set_scoring_config(partial: Mapping[str, Any] | ScoringConfig | None) -> ScoringConfig:
    """Merge a partial configuration into the process-wide configuration."""
    return _store.set(partial)


def reset_scoring_config() -> ScoringConfig:
    """Restore the process-wide configuration to the defaults."""
    return _store.reset()
