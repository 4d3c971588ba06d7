# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for bertprep tests.

The vocabulary here is tiny on purpose: every id is easy to read off the
list, so expected token_ids arrays can be written by hand.
"""

import textwrap
from pathlib import Path

import pytest

from bertprep.tokenizer.vocab.core import Vocabulary
from bertprep.tokenizer.wordpiece.core import WordPieceTokenizer

VOCAB_TOKENS: list[str] = [
    "[PAD]",    # 0
    "[UNK]",    # 1
    "[CLS]",    # 2
    "[SEP]",    # 3
    "[MASK]",   # 4
    "hello",    # 5
    "world",    # 6
    "un",       # 7
    "##aff",    # 8
    "##able",   # 9
    "play",     # 10
    "##ing",    # 11
    "!",        # 12
    ",",        # 13
    ".",        # 14
    "你",       # 15
    "好",       # 16
    "cafe",     # 17
    "a",        # 18
    "##b",      # 19
    "##c",      # 20
    "Hello",    # 21
]


@pytest.fixture()
def vocab() -> Vocabulary:
    return Vocabulary(VOCAB_TOKENS)


@pytest.fixture()
def wordpiece(vocab: Vocabulary) -> WordPieceTokenizer:
    return WordPieceTokenizer(vocab)


@pytest.fixture()
def vocab_file(tmp_path: Path) -> Path:
    """VOCAB_TOKENS written as a vocab.txt, one token per line."""
    path = tmp_path / "vocab.txt"
    path.write_text("\n".join(VOCAB_TOKENS) + "\n", encoding="utf-8")
    return path


@pytest.fixture()
def tmp_config_file(tmp_path: Path, vocab_file: Path) -> Path:
    """A config pointing at `vocab_file` through a relative path."""
    config_content = textwrap.dedent("""\
        global:
          config_version: "1.0.0"
          project_name: "bertprep-test"
          log_level: "DEBUG"
        tokenizer:
          vocab_path: "vocab.txt"
        service:
          model_name: "bert"
          model_prefix: "test"
          max_seq_length: 8
    """)
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def invalid_config_file(tmp_path: Path) -> Path:
    """Valid YAML that fails schema validation (missing config_version)."""
    config_content = textwrap.dedent("""\
        global:
          project_name: "bertprep-test"
    """)
    config_file = tmp_path / "invalid_config.yaml"
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file
