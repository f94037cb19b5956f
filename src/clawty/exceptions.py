"""
Clawty Exception Hierarchy.

All custom exceptions inherit from ClawtyError for unified error handling.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class ClawtyError(Exception):
    """Base exception for Clawty errors.

    Attributes:
        message: Human-readable error description
        context: Additional context for debugging
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self._log_error()

    def _log_error(self) -> None:
        """Log the error creation at debug level.

        Callers should log at the appropriate level when handling the exception.
        """
        logger.debug(
            f"{self.__class__.__name__}: {self.message}",
            extra={"error_context": self.context},
        )

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} [{ctx}]"
        return self.message


class ConfigError(ClawtyError):
    """Raised for configuration errors.

    Examples:
        - Working directory does not exist
        - Invalid log level
        - Malformed config file
    """


class AgentError(ClawtyError):
    """Raised when the agent subprocess fails without producing a result.

    Attributes:
        returncode: Exit status of the subprocess, if it exited
        stderr: Captured standard error output
    """

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if returncode is not None:
            ctx["returncode"] = returncode
        super().__init__(message, ctx)
        self.returncode = returncode
        self.stderr = stderr


class DeliveryError(ClawtyError):
    """Raised when a reply could not be delivered to its destination."""

    def __init__(
        self,
        message: str,
        destination: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if destination:
            ctx["destination"] = destination
        super().__init__(message, ctx)
        self.destination = destination


class TerminalError(ClawtyError):
    """Raised when the terminal cannot be switched into or out of raw mode."""
