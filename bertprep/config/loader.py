# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Config loader: reads YAML from disk and produces a validated, frozen
BertPrepConfig.

  1. Read the file as UTF-8 text
  2. Parse it with yaml.safe_load into a plain dict
  3. Validate the dict against the pydantic schema
  4. Return the frozen config object

Any failure stops here with a ConfigLoadError or ConfigValidationError.
There are no fallback defaults for a broken file.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from bertprep.config.exceptions import ConfigLoadError, ConfigValidationError
from bertprep.config.schema import BertPrepConfig


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed mapping.

    Raises:
        ConfigLoadError: If the file doesn't exist, isn't readable, or isn't
            a YAML mapping.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Config file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Config path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise ConfigLoadError(f"Cannot read config file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Config file must contain a YAML mapping (dict), got {type(parsed).__name__}"
        )

    return parsed


def load_config(config_path: Path) -> BertPrepConfig:
    """
    Load, validate, and freeze a config file.

    Relative `tokenizer.vocab_path` values are resolved against the config
    file's directory, so a config and its vocabulary can be moved together.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Schema violations.
    """
    raw_data = _read_yaml_file(config_path)

    tokenizer_section = raw_data.get("tokenizer")
    if isinstance(tokenizer_section, dict) and isinstance(tokenizer_section.get("vocab_path"), str):
        vocab_path = Path(tokenizer_section["vocab_path"])
        if not vocab_path.is_absolute():
            tokenizer_section = dict(tokenizer_section)
            tokenizer_section["vocab_path"] = str(config_path.parent / vocab_path)
            raw_data = {**raw_data, "tokenizer": tokenizer_section}

    try:
        config = BertPrepConfig.model_validate(raw_data)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Config validation failed for {config_path}:\n{err}"
        ) from err

    return config
