"""Exceptions surfaced to callers of the fingerprint engine.

Network failures inside the engine are never raised; they degrade to
"no signal". Only configuration and target problems reach the caller.
"""

from typing import Any


class PressProbeError(Exception):
    """Base exception for all PressProbe errors."""

    error_code: str = "PRESSPROBE_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Return structured error dict."""
        response: dict[str, Any] = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response


class ConfigError(PressProbeError):
    """Configuration file or settings failed validation."""

    error_code = "CONFIG_ERROR"


class TargetError(PressProbeError):
    """Target URL is unparseable or its main page could not be fetched."""

    error_code = "TARGET_ERROR"

    def __init__(self, target: str, reason: str):
        super().__init__(f"{reason}: {target}", details={"target": target, "reason": reason})
