"""
Graceful failure for non-critical report sections.

Supplementary analyses (hypothesis checks, yes-rate, ceiling statistics, the
evidence grade) must never take the core validity statistics down with them.
Wrapping them in ``graceful_failure`` logs the error and lets the caller keep
whatever default it assigned before entering the block.

Usage:
    from ihs_validity.core.graceful_failure import graceful_failure

    report["ceiling"] = None
    with graceful_failure("compute ceiling statistics", logger):
        report["ceiling"] = ceiling_analysis(records)
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Optional


@contextmanager
def graceful_failure(
    operation_name: str,
    logger: logging.Logger,
    *,
    log_level: int = logging.WARNING,
    exc_info: bool = False,
    context: Optional[dict[str, Any]] = None,
) -> Generator[None, None, None]:
    """Log and suppress any exception raised inside the block.

    Args:
        operation_name: Human-readable name used in the log message
            (e.g., "evaluate hypotheses").
        logger: Logger that receives the failure message.
        log_level: Level of the failure message. Defaults to WARNING.
        exc_info: Whether to attach the traceback. Defaults to False.
        context: Optional key/value pairs appended to the message.
    """
    try:
        yield
    except Exception as e:
        if context:
            context_str = ", ".join(f"{k}={v}" for k, v in context.items())
            message = f"Failed to {operation_name} ({context_str}): {e}"
        else:
            message = f"Failed to {operation_name}: {e}"

        logger.log(log_level, message, exc_info=exc_info)
