"""Errors raised while turning a proto schema into the intermediate model."""

from __future__ import annotations

from typing import Optional


class ProtoScaffoldError(Exception):
    """Base class for every fatal error of the extraction pipeline."""


class SourceReadError(ProtoScaffoldError):
    """Raised when the schema source is missing or cannot be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot read '{path}': {reason}")
        self.path = path


class ProtoParseError(ProtoScaffoldError):
    """Raised when the parser encounters unexpected input."""

    def __init__(self, message: str, line: Optional[int] = None, col: Optional[int] = None):
        if line is not None:
            super().__init__(f"Line {line}:{col}: {message}")
        else:
            super().__init__(message)
        self.diagnostic = message
        self.line = line
        self.col = col


class EmptyModelError(ProtoScaffoldError):
    """Raised when a schema parsed cleanly but declares no service."""


class ProtocError(ProtoScaffoldError):
    """Raised when the protoc compiler cannot be run at all."""
