# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the bertprep CLI.

Each handler loads the config, builds the service, does one job and
returns an exit code. Results go to the structured logger or, for
`encode`, to files on disk. No print() calls.
"""

import argparse
import logging
from pathlib import Path

from bertprep.cli.exit_codes import (
    CONFIG_ERROR,
    RUNTIME_ERROR,
    SUCCESS,
    USER_ERROR,
    VALIDATION_ERROR,
)
from bertprep.config.exceptions import ConfigError
from bertprep.config.loader import load_config
from bertprep.config.schema import BertPrepConfig, GlobalConfig, ServiceConfig, TokenizerConfig
from bertprep.logging.logger import get_logger
from bertprep.serving.api.schema import GRPCRequest
from bertprep.serving.exceptions import EncodingError
from bertprep.serving.service.core import BertModelService


def _resolve_config(args: argparse.Namespace) -> BertPrepConfig:
    """
    Load --config if given, otherwise start from defaults, then apply
    the command-line overrides (--vocab, --max-seq-length, --transport, --chinese).
    """
    if args.config is not None:
        config = load_config(Path(args.config))
    else:
        config = BertPrepConfig.model_validate(
            {"global": GlobalConfig(config_version="1.0.0")}
        )

    tokenizer_updates: dict[str, object] = {}
    if args.vocab is not None:
        tokenizer_updates["vocab_path"] = args.vocab
    if args.chinese:
        tokenizer_updates["chinese"] = True

    service_updates: dict[str, object] = {}
    if getattr(args, "max_seq_length", None) is not None:
        service_updates["max_seq_length"] = args.max_seq_length
    if getattr(args, "transport", None) is not None:
        service_updates["transport"] = args.transport

    if not tokenizer_updates and not service_updates:
        return config

    # Round-trip through validation so overrides get the same checks as YAML.
    tokenizer = TokenizerConfig.model_validate(
        {**config.tokenizer.model_dump(), **tokenizer_updates}
    )
    service = ServiceConfig.model_validate({**config.service.model_dump(), **service_updates})
    return BertPrepConfig.model_validate(
        {"global": config.global_config, "tokenizer": tokenizer, "service": service}
    )


def _setup(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, BertModelService | None, logging.Logger]:
    """
    Shared setup: config, logger, service.

    Returns (exit_code, service, logger). Callers return exit_code straight
    away when it isn't SUCCESS.
    """
    logger = get_logger(f"bertprep.cli.{command_name}", log_level=args.log_level)

    try:
        config = _resolve_config(args)
    except ConfigError as err:
        logger.error("Configuration error", extra={"command": command_name, "error": str(err)})
        return CONFIG_ERROR, None, logger
    except ValueError as err:
        # pydantic.ValidationError from command-line overrides
        logger.error("Invalid option", extra={"command": command_name, "error": str(err)})
        return USER_ERROR, None, logger

    if config.global_config.log_file is not None:
        logger = get_logger(
            f"bertprep.cli.{command_name}",
            log_level=args.log_level,
            log_file=Path(config.global_config.log_file),
        )

    try:
        service = BertModelService.from_config(config)
    except ConfigError as err:
        logger.error(
            "Cannot build service",
            extra={"command": command_name, "error": str(err)},
        )
        return CONFIG_ERROR, None, logger

    return SUCCESS, service, logger


def handle_tokenize(args: argparse.Namespace) -> int:
    """Log the WordPiece tokens and their offsets for each --text."""
    exit_code, service, logger = _setup(args, "tokenize")
    if exit_code != SUCCESS:
        return exit_code
    assert service is not None

    if not args.text:
        logger.error("Nothing to tokenize; pass at least one --text")
        return USER_ERROR

    try:
        for text, tokens in zip(args.text, service.tokenize(args.text)):
            logger.info(
                "Tokenized",
                extra={
                    "text": text,
                    "tokens": [token.text for token in tokens],
                    "offsets": [[token.start, token.end] for token in tokens],
                    "ids": [service.vocabulary.get_id(token.text) for token in tokens],
                },
            )
        return SUCCESS
    except EncodingError as err:
        logger.error("Input rejected", extra={"error": str(err)})
        return VALIDATION_ERROR
    except Exception as err:
        logger.error("Tokenize failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_encode(args: argparse.Namespace) -> int:
    """
    Build the request payload for all --text values and write it out.

    http: <output> receives the JSON body.
    grpc: <output>.segment_ids.bin, <output>.input_ids.bin and
          <output>.input_mask.bin receive the raw buffers.
    """
    exit_code, service, logger = _setup(args, "encode")
    if exit_code != SUCCESS:
        return exit_code
    assert service is not None

    if not args.text:
        logger.error("Nothing to encode; pass at least one --text")
        return USER_ERROR
    if args.output is None:
        logger.error("--output is required for encode")
        return USER_ERROR

    output = Path(args.output)
    try:
        request = service.prepare(args.text)

        if args.dry_run:
            logger.info(
                "Dry run: payload built but not written",
                extra={"batch_size": len(args.text), "transport": service.config.transport},
            )
            return SUCCESS

        output.parent.mkdir(parents=True, exist_ok=True)
        written: list[str] = []
        if isinstance(request, GRPCRequest):
            for name, buffer in request.raw_inputs._asdict().items():
                target = output.with_name(f"{output.name}.{name}.bin")
                target.write_bytes(buffer)
                written.append(str(target))
        else:
            output.write_bytes(request.body)
            written.append(str(output))

        logger.info(
            "Payload written",
            extra={
                "model": service.model_name,
                "batch_size": len(args.text),
                "files": written,
            },
        )
        return SUCCESS

    except EncodingError as err:
        logger.error("Encoding failed", extra={"error": str(err)})
        return VALIDATION_ERROR
    except Exception as err:
        logger.error("Encode failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_info(args: argparse.Namespace) -> int:
    """Log the effective settings and vocabulary size."""
    exit_code, service, logger = _setup(args, "info")
    if exit_code != SUCCESS:
        return exit_code
    assert service is not None

    logger.info(
        "bertprep info",
        extra={
            "model": service.model_name,
            "vocab_size": len(service.vocabulary),
            "transport": service.config.transport,
            "max_seq_length": service.config.max_seq_length,
            "chinese": service.tokenizer_config.chinese,
            "max_word_chars": service.tokenizer_config.max_word_chars,
            "inputs": [tensor.name for tensor in service.input_tensors(1)],
            "outputs": [tensor.name for tensor in service.output_tensors()],
        },
    )
    return SUCCESS
