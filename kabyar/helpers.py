"""
Utility functions for the application
"""

import sys
import time
import logging
import structlog
from structlog import contextvars as struct_context
from contextlib import contextmanager
from .config import settings


def configure_structlog():
    """Configure structlog processors and level filtering from LOG_LEVEL."""
    processors = [
        struct_context.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=False),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.LOG_LEVEL == "debug":
        processors.append(structlog.dev.ConsoleRenderer())
        log_level = logging.DEBUG
    elif settings.LOG_LEVEL == "info":
        processors.append(structlog.dev.ConsoleRenderer())
        log_level = logging.INFO
    else:  # false
        # JSON renderer, but only fatal errors get through
        processors.append(structlog.processors.JSONRenderer())
        log_level = logging.CRITICAL

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


configure_structlog()

_logger = structlog.get_logger()


def bind_request_context(**kwargs) -> None:
    """Bind structured logging context, ignoring None values."""
    filtered = {k: v for k, v in kwargs.items() if v is not None}
    if filtered:
        struct_context.bind_contextvars(**filtered)


def reset_request_context(*keys: str) -> None:
    """Unbind the given context keys, or everything when none are given."""
    if keys:
        struct_context.unbind_contextvars(*keys)
    else:
        struct_context.clear_contextvars()


def error_log(message: str, *args, **kwargs) -> None:
    """
    Error log (emitted at every level)

    Args:
        message: log message
        *args: %-style formatting arguments
        **kwargs: extra structured fields
    """
    if args:
        formatted_message = message % args
    else:
        formatted_message = message

    _logger.error(formatted_message, **kwargs)


def info_log(message: str, *args, **kwargs) -> None:
    """
    Info log (emitted at info and debug levels)

    Args:
        message: log message
        *args: %-style formatting arguments
        **kwargs: extra structured fields
    """
    if settings.LOG_LEVEL in ["info", "debug"]:
        if args:
            formatted_message = message % args
        else:
            formatted_message = message

        _logger.info(formatted_message, **kwargs)


def debug_log(message: str, *args, **kwargs) -> None:
    """
    Debug log (emitted at debug level only)

    Args:
        message: log message
        *args: %-style formatting arguments
        **kwargs: extra structured fields
    """
    if settings.LOG_LEVEL == "debug":
        if args:
            formatted_message = message % args
        else:
            formatted_message = message

        _logger.debug(formatted_message, **kwargs)


def request_stage_log(stage: str, message: str, **kwargs) -> None:
    """
    Log info-level request stage transitions without dumping payload data.

    Args:
        stage: Logical stage identifier (e.g. "received", "upstream_request").
        message: Human readable description for terminal viewers.
        **kwargs: Extra structured fields to enrich the log.
    """
    normalized_stage = (stage or "unknown").strip().lower().replace(" ", "_")
    info_log(f"[REQUEST] {message}", stage=normalized_stage, **kwargs)


def get_logger(name: str = None):
    """
    Return a structlog logger

    Args:
        name: optional logger name

    Returns:
        structlog BoundLogger
    """
    if name:
        return structlog.get_logger(name)
    return _logger


@contextmanager
def perf_timer(operation_name: str, log_result: bool = True, threshold_ms: float = 0):
    """
    Timing context manager

    Args:
        operation_name: operation label
        log_result: whether to log the elapsed time
        threshold_ms: only log operations slower than this (0 logs all)

    Yields:
        dict carrying elapsed_ms / elapsed_s once the block exits

    Example:
        with perf_timer("openai_chat") as timer:
            result = await client.chat.completions.create(...)
        print(f"took {timer['elapsed_ms']:.2f}ms")
    """
    timer_dict = {"elapsed_ms": 0, "elapsed_s": 0}
    start_time = time.perf_counter()

    try:
        yield timer_dict
    finally:
        elapsed_s = time.perf_counter() - start_time
        elapsed_ms = elapsed_s * 1000
        timer_dict["elapsed_ms"] = elapsed_ms
        timer_dict["elapsed_s"] = elapsed_s

        if log_result and elapsed_ms >= threshold_ms:
            debug_log(
                f"⏱️ {operation_name}",
                elapsed_ms=f"{elapsed_ms:.2f}ms",
                elapsed_s=f"{elapsed_s:.4f}s"
            )


def count_words(text: str) -> int:
    """Whitespace word count, used for credit pricing."""
    return len(text.split()) if text else 0
