# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Configuration-time exceptions for bertprep.

Everything that can go wrong before the first request is served lives
here: unreadable YAML, schema violations, an unreadable vocabulary file,
and a vocabulary that lacks the special tokens BERT needs. The CLI maps
the whole ConfigError family to a single exit code, so callers can catch
the base class without importing the loaders.
"""


class ConfigError(Exception):
    """Base for all configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when a config file cannot be read from disk or parsed as YAML."""


class ConfigValidationError(ConfigError):
    """
    Raised when a config file parses fine but fails schema validation:
    missing required fields, wrong types, unknown keys, out-of-range values.
    """


class VocabularyLoadError(ConfigLoadError):
    """Raised when a vocabulary file is missing, unreadable, or malformed."""


class ConfigurationError(ConfigError):
    """
    Raised when loaded resources contradict what the pipeline requires.

    The main case is a vocabulary without one of the reserved entries
    ([CLS], [SEP] or [UNK]). It is raised while the vocabulary or
    tokenizer is being constructed, never in the middle of tokenizing.
    """

    def __init__(self, message: str, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing = missing
