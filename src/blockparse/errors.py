"""Error taxonomy and structured error reporting for the block parser.

Almost every failure mode of the pipeline is recovered locally and only
reported through logging. The exception classes here cover the few cases that
do surface to a caller:

- ``HtmlFragmentError``: the HTML fragment facility could not parse a block's
  markup. The resolver catches it, records it on the block and logs it at
  ERROR level; ``parse()`` never raises it.
- ``RegistryError``: a caller registered an invalid or duplicate block type.
- ``InvalidOptionError``: ``ParserOptions.from_cli`` got an unknown value.

``ErrorManager`` attaches an event code and the ``ErrorContext`` fields to each
log record so log consumers can filter on them.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from blockparse.decision_logger import log_block_decision, log_error_policy

logger = logging.getLogger(__name__)


class BlockParseError(Exception):
    """Base class for errors raised by blockparse."""


class HtmlFragmentError(BlockParseError):
    """The HTML fragment facility failed on a block's markup."""

    def __init__(self, block_name: str | None, cause: Exception | None = None) -> None:
        self.block_name = block_name
        self.cause = cause
        message = f"Failed to parse HTML fragment for block {block_name or 'freeform'}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class RegistryError(BlockParseError):
    """A block type could not be registered."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Cannot register block type '{name}': {reason}")


class InvalidOptionError(ValueError):
    """A parser option was given an invalid value."""


@dataclass
class ErrorContext:
    """Context attached to every structured log record."""

    block_name: str | None = None
    block_index: int | None = None
    source_module: str | None = None
    flags: dict[str, Any] = field(default_factory=dict)
    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    def to_dict(self) -> dict[str, Any]:
        return {
            "block_name": self.block_name,
            "block_index": self.block_index,
            "source_module": self.source_module,
            "flags": self.flags,
            "correlation_id": self.correlation_id,
        }


class ErrorManager:
    """Emit structured warnings, errors and decisions with event codes."""

    def __init__(self, context: ErrorContext | None = None) -> None:
        self.context = context or ErrorContext()

    def _build_log_data(self, event_code: str) -> dict[str, Any]:
        data = self.context.to_dict()
        data["event_code"] = event_code
        return data

    def _merge(
        self,
        event_code: str,
        extra: dict[str, Any] | None,
        exception: BaseException | None,
    ) -> dict[str, Any]:
        data = self._build_log_data(event_code)
        if extra:
            data.update(extra)
        if exception is not None:
            data["exception_class"] = type(exception).__name__
            data["exception_message"] = str(exception)
        return data

    def warn(
        self,
        event_code: str,
        message: str,
        *,
        extra: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        logger.warning(
            "%s: %s", event_code, message, extra=self._merge(event_code, extra, exception)
        )

    def error(
        self,
        event_code: str,
        message: str,
        *,
        extra: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        logger.error(
            "%s: %s", event_code, message, extra=self._merge(event_code, extra, exception)
        )

    def info(
        self,
        event_code: str,
        message: str,
        *,
        extra: dict[str, Any] | None = None,
    ) -> None:
        logger.info("%s: %s", event_code, message, extra=self._merge(event_code, extra, None))

    def debug(
        self,
        event_code: str,
        message: str,
        *,
        extra: dict[str, Any] | None = None,
    ) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "%s: %s", event_code, message, extra=self._merge(event_code, extra, None)
            )

    def decision(
        self,
        event_code: str,
        decision_key: str,
        decision_value: Any,
        *,
        extra: dict[str, Any] | None = None,
    ) -> None:
        log_block_decision(decision_key, str(decision_value), extra)
        data = self._merge(event_code, extra, None)
        data["decision_key"] = decision_key
        data["decision_value"] = decision_value
        logger.info("%s: %s=%s", event_code, decision_key, decision_value, extra=data)

    def error_policy(
        self,
        feature: str,
        error_type: str,
        action: str,
        *,
        details: str | None = None,
        event_code: str | None = None,
    ) -> None:
        log_error_policy(feature, error_type, action, details)
        if event_code is None:
            return
        data = self._build_log_data(event_code)
        data.update(
            {"feature": feature, "error_type": error_type, "action": action, "details": details}
        )
        logger.warning(
            "%s: %s error policy: %s -> %s", event_code, feature, error_type, action, extra=data
        )


__all__ = [
    "BlockParseError",
    "ErrorContext",
    "ErrorManager",
    "HtmlFragmentError",
    "InvalidOptionError",
    "RegistryError",
]
