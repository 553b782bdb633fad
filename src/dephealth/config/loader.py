"""Configuration loading and resolution.

Settings come from four places, highest priority first:

1. CLI arguments
2. Config file (JSON)
3. Environment variables
4. Built-in defaults

Config files are declarative JSON validated against ``AppConfig``; they are
never executed. The resolved scoring configuration is installed into the
process-wide store once, before any scoring starts.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from dephealth.defaults import WEIGHT_PRESETS
from dephealth.errors import ConfigFileError
from dephealth.models.schemas import (
    AppConfig,
    Penalties,
    ScoringConfig,
    ScoringConstants,
    Settings,
    TokenConfig,
)
from dephealth.scoring.store import (
    DEFAULT_SCORING_CONFIG,
    field_lookup,
    merge_scoring_config,
    reset_scoring_config,
    set_scoring_config,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "dephealth-config.json"
CONFIG_ENV_VAR = "DEPHEALTH_CONFIG"
SUPPORTED_EXTENSIONS = (".json",)

# Token field -> environment variable
TOKEN_ENV_VARS = {
    "github": "GITHUB_TOKEN",
    "gitlab": "GITLAB_TOKEN",
    "bitbucket": "BITBUCKET_TOKEN",
}

SCORING_GROUPS = {"weights", "boosters", "constants", "penalties", "scale"}


def preset_scoring_config(name: str) -> ScoringConfig:
    """Default scoring configuration with the weights of a named preset.

    Raises:
        ConfigFileError: If no preset has that name.
    """
    if name not in WEIGHT_PRESETS:
        raise ConfigFileError(
            f"Unknown weight preset '{name}'. Available: {', '.join(sorted(WEIGHT_PRESETS))}"
        )
    return ScoringConfig(weights=dict(WEIGHT_PRESETS[name]))


def validate_scoring_fragment(
    fragment: Mapping[str, Any],
    source: str = "scoring",
    base: ScoringConfig | None = None,
) -> ScoringConfig:
    """Validate a partial scoring configuration and merge it onto ``base``.

    Unlike the store, this rejects unknown groups and fields, negative or
    non-finite weights and out-of-range constants. ``base`` defaults to the
    built-in configuration.

    Raises:
        ConfigFileError: If the fragment is invalid.
    """
    if not isinstance(fragment, Mapping):
        raise ConfigFileError(f"{source}: scoring section must be an object")

    unknown = set(fragment) - SCORING_GROUPS
    if unknown:
        raise ConfigFileError(
            f"{source}: unknown scoring group(s): {', '.join(sorted(unknown))}. "
            f"Expected: {', '.join(sorted(SCORING_GROUPS))}"
        )

    for group, model_cls in (("constants", ScoringConstants), ("penalties", Penalties)):
        fields = fragment.get(group) or {}
        if not isinstance(fields, Mapping):
            raise ConfigFileError(f"{source}: '{group}' must be an object")
        unknown = set(fields) - set(field_lookup(model_cls))
        if unknown:
            raise ConfigFileError(f"{source}: unknown {group} field(s): {', '.join(sorted(unknown))}")

    for group in ("weights", "boosters"):
        if not isinstance(fragment.get(group) or {}, Mapping):
            raise ConfigFileError(f"{source}: '{group}' must be an object")

    merged = merge_scoring_config(base or ScoringConfig(), fragment)
    try:
        return ScoringConfig.model_validate(
            {
                "weights": merged.weights,
                "boosters": merged.boosters,
                "constants": dict(merged.constants),
                "penalties": dict(merged.penalties),
                "scale": merged.scale,
            }
        )
    except ValidationError as e:
        raise ConfigFileError(f"{source}: invalid scoring configuration\n{e}") from e


def load_config_file(path: Path | str) -> AppConfig:
    """Load and validate a JSON configuration file.

    Args:
        path: Path to the config file.

    Returns:
        Validated AppConfig.

    Raises:
        ConfigFileError: If the file is missing, not JSON, or fails validation.
    """
    path = Path(path)

    if not path.is_file():
        raise ConfigFileError(f"Config file not found: {path}", path=str(path))

    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise ConfigFileError(
            f"Unsupported config file format: {path.suffix or '(none)'}. "
            f"Supported: {', '.join(SUPPORTED_EXTENSIONS)}",
            path=str(path),
        )

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigFileError(f"Invalid JSON in {path}: {e}", path=str(path)) from e

    if not isinstance(data, dict):
        raise ConfigFileError(f"Config file must contain a JSON object: {path}", path=str(path))

    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigFileError(f"Invalid config file {path}\n{e}", path=str(path)) from e

    base = None
    if config.preset:
        try:
            base = preset_scoring_config(config.preset)
        except ConfigFileError as e:
            raise ConfigFileError(f"{path}: {e}", path=str(path)) from e
    validate_scoring_fragment(config.scoring, source=str(path), base=base)
    logger.info(f"Loaded configuration from {path}")
    return config


def env_settings(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Read tokens and the config file path from the environment."""
    environ = os.environ if environ is None else environ
    settings: dict[str, Any] = {
        f"{platform}_token": environ.get(var) or None for platform, var in TOKEN_ENV_VARS.items()
    }
    settings["config_file"] = environ.get(CONFIG_ENV_VAR) or None
    return settings


def _first(*values: Any) -> Any:
    """First value that is neither None nor empty."""
    for value in values:
        if value not in (None, ""):
            return value
    return None


def resolve_settings(
    cli: Mapping[str, Any] | None = None,
    file_config: AppConfig | None = None,
    env: Mapping[str, Any] | None = None,
) -> Settings:
    """Merge configuration fragments with precedence CLI > file > env > defaults.

    Args:
        cli: Values from command-line options (``github_token``,
            ``gitlab_token``, ``bitbucket_token``, ``config_file``,
            ``preset``, ``scoring``).
        file_config: Loaded config file, if any.
        env: Values from ``env_settings``.

    Returns:
        Fully resolved Settings.

    Raises:
        ConfigFileError: If the preset is unknown or a scoring fragment is
            invalid.
    """
    cli = cli or {}
    env = env or {}
    file_tokens = file_config.tokens if file_config else TokenConfig()

    tokens = TokenConfig(
        **{
            platform: _first(
                cli.get(f"{platform}_token"),
                getattr(file_tokens, platform),
                env.get(f"{platform}_token"),
            )
            for platform in TOKEN_ENV_VARS
        }
    )

    # A preset replaces the default weights; explicit weights still win
    preset = _first(cli.get("preset"), file_config.preset if file_config else None) or "default"
    scoring = preset_scoring_config(preset)
    if file_config and file_config.scoring:
        scoring = validate_scoring_fragment(file_config.scoring, source="config file", base=scoring)
    if cli.get("scoring"):
        scoring = validate_scoring_fragment(cli["scoring"], source="command line", base=scoring)

    return Settings(
        tokens=tokens,
        scoring=scoring,
        preset=preset,
        config_file=_first(cli.get("config_file"), env.get("config_file")),
    )


def load_settings(
    cli: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve settings, loading the config file named on the CLI or in the environment.

    Raises:
        ConfigFileError: If a config file was named but cannot be loaded.
    """
    cli = cli or {}
    env = env_settings(environ)
    config_path = _first(cli.get("config_file"), env.get("config_file"))
    file_config = load_config_file(config_path) if config_path else None
    return resolve_settings(cli, file_config, env)


def apply_settings(settings: Settings) -> ScoringConfig:
    """Install the resolved scoring configuration as the process-wide one."""
    reset_scoring_config()
    return set_scoring_config(settings.scoring)


def default_config_template() -> dict[str, Any]:
    """Fully enumerated default configuration, ready to edit."""
    scoring = json.loads(json.dumps(DEFAULT_SCORING_CONFIG))
    scoring.pop("scale", None)
    return {
        "tokens": {platform: None for platform in TOKEN_ENV_VARS},
        "scoring": scoring,
    }


def write_config_template(path: Path | str = DEFAULT_CONFIG_FILENAME, force: bool = False) -> Path:
    """Write the default configuration template.

    Raises:
        ConfigFileError: If the file exists and ``force`` is not set, or the
            extension is not supported.
    """
    path = Path(path)
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise ConfigFileError(
            f"Config templates are JSON; use a .json file name (got {path.name})", path=str(path)
        )
    if path.exists() and not force:
        raise ConfigFileError(f"{path} already exists (use --force to overwrite)", path=str(path))

    path.write_text(json.dumps(default_config_template(), indent=2) + "\n", encoding="utf-8")
    logger.info(f"Wrote configuration template to {path}")
    return path
