"""Error taxonomy for scans. Navigation trouble and WCAG mapping misses are not errors."""
from __future__ import annotations

from typing import Any


class ScanError(Exception):
    """Base for failures that end one (URL, engine) scan without stopping a batch."""


class UnsupportedCapabilityError(ScanError):
    """The engine needs something the current backend cannot provide (e.g. CDP on Firefox)."""


class MissingCredentialError(UnsupportedCapabilityError):
    """The engine needs a credential that is not configured."""


class ExternalServiceError(ScanError):
    """An external scanner or service failed. May carry the payload it returned."""

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class WaveThresholdError(ExternalServiceError):
    """WAVE answered successfully but reported errors or contrast failures.

    `payload` is the raw API response and `session` the adapted ScanSession,
    so a report can still be written for the failed scan.
    """

    def __init__(self, message: str, payload: Any = None, session: Any = None) -> None:
        super().__init__(message, payload)
        self.session = session


class ConfigLoadError(Exception):
    """Raised when a configuration file is malformed."""
