"""Logging configuration using loguru.

Two channels share one logger: "cron" for ingestion and "ai" for the
trending analyzer. The channel travels in `record["extra"]`, which lets the
ai sink pick out analyzer records only.
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

from newsdesk.models.config import LoggingConfig

AI_CHANNEL = "ai"
CRON_CHANNEL = "cron"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[channel]: <4}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[channel]} | {name}:{function}:{line} | {message}"


def _only_ai(record: "Record") -> bool:
    return record["extra"].get("channel") == AI_CHANNEL


def _file_sink(path: str, config: LoggingConfig, **overrides: Any) -> int:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    options: dict[str, Any] = {
        "level": config.level,
        "format": FILE_FORMAT,
        "rotation": config.rotation,
        "retention": config.retention,
        "compression": config.compression,
        "serialize": config.serialize,
        "enqueue": True,
    }
    options.update(overrides)
    return logger.add(path, **options)


def setup_logging(config: LoggingConfig) -> None:
    """
    Replace loguru's default handler with the configured sinks.

    - stderr, colorized unless disabled
    - a rotating file with every record
    - when `ai_file_path` is set, a second file with analyzer records at DEBUG,
      so prompts and raw model answers are kept even at INFO level
    """
    logger.remove()
    # Records logged through the bare logger still need a channel for the formats
    logger.configure(extra={"channel": CRON_CHANNEL})

    logger.add(sys.stderr, level=config.level, format=CONSOLE_FORMAT, colorize=config.colorize)
    _file_sink(config.file_path, config)
    if config.ai_file_path:
        _file_sink(config.ai_file_path, config, level="DEBUG", filter=_only_ai)

    logger.info(
        "Logging configured",
        level=config.level,
        file=config.file_path,
        ai_file=config.ai_file_path,
        serialize=config.serialize,
    )


def get_logger(name: str, channel: str = CRON_CHANNEL) -> "Logger":
    """
    Logger bound to a component name and channel.

    Components accept the returned logger as a constructor argument, so tests
    can inject their own.
    """
    return logger.bind(name=name, channel=channel)
