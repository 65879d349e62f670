"""Structured logging configuration (stdout only)."""

import logging
import sys

import structlog

from burnbot.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    """Set up structlog on top of stdlib logging with a single stdout handler."""
    # Shared structlog processors
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if config.json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper()))

    # The RPC and trade clients both log every request through httpx
    for noisy_logger in ["httpx", "httpcore", "urllib3"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def get_trade_logger() -> structlog.stdlib.BoundLogger:
    """Get the logger that records buys and burns."""
    return structlog.get_logger("burnbot.trades")
