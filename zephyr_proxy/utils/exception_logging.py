"""
Exception logging for the forwarding path.

The proxy reports every failed forward to the operator log and then answers
the caller with a bare 500, so the logging step itself must never raise.
Exception groups (raised by anyio task groups inside Starlette) are unfolded
so each sub-exception gets its own line.
"""

import logging
from typing import List, Optional


def _safe_str(obj) -> str:
    """str() that falls back to repr() and finally to the type name."""
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            return f"<{type(obj).__name__} object (string conversion failed)>"


def _sub_exceptions(exception) -> List[BaseException]:
    try:
        return list(getattr(exception, "exceptions", None) or [])
    except Exception:
        return []


def format_exception_message(exception: Optional[BaseException]) -> str:
    """
    One-line description of an exception, including the sub-exceptions of an
    exception group. Never raises.
    """
    if exception is None:
        return "None"
    try:
        subs = _sub_exceptions(exception)
        if not subs:
            return f"{type(exception).__name__}: {_safe_str(exception)}"
        parts = "; ".join(
            f"{type(sub).__name__}: {_safe_str(sub)}" for sub in subs
        )
        return f"{_safe_str(exception)} (Sub-exceptions: {parts})"
    except Exception:
        return "<exception (formatting failed)>"


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Optional[BaseException],
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with its traceback, one entry per sub-exception for
    exception groups.

    Args:
        logger: Logger to write to
        prefix: Tag prepended to every line, e.g. "[Proxy]"
        exception: The exception to log
        level: Logging level (default: ERROR)
    """
    try:
        subs = _sub_exceptions(exception)
        if not subs:
            logger.log(
                level,
                f"{prefix} Exception: {format_exception_message(exception)}",
                exc_info=exception if exception is not None else False,
            )
            return

        logger.log(
            level,
            f"{prefix} Exception with {len(subs)} sub-exceptions: {_safe_str(exception)}",
        )
        for i, sub in enumerate(subs, start=1):
            logger.log(
                level,
                f"{prefix} Sub-exception {i}: {format_exception_message(sub)}",
                exc_info=sub,
            )
    except Exception:
        try:
            logger.log(logging.ERROR, f"{prefix} Exception logging failed")
        except Exception:
            # nowhere left to report
            pass
