"""Error types raised by fresh."""

from __future__ import annotations

from .models import Origin


class FreshError(RuntimeError):
    """Base class for fatal fresh errors.

    When ``origin`` is known the rendered message ends with the declaration's
    location and its literal text.
    """

    def __init__(self, message: str, *, origin: Origin | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.origin = origin

    def __str__(self) -> str:
        if self.origin is None:
            return self.message
        text = self.origin.source_text()
        location = f"{self.origin}: {text}" if text else str(self.origin)
        return f"{self.message}\n{location}"


class ParseError(FreshError):
    """Raised when a declaration record is malformed."""


class MissingSourceError(FreshError):
    """Raised when an entry matches no source file."""


class LinkConflictError(FreshError):
    """Raised when a link path is occupied by something fresh does not own."""


class ConfigError(FreshError):
    """Raised for illegal option combinations or invalid settings."""


class BuildPermissionError(FreshError):
    """Raised when a filesystem operation is denied."""


class CommandError(FreshError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self,
        message: str,
        *,
        origin: Origin | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message, origin=origin)
        self.returncode = returncode
        self.stderr = stderr
