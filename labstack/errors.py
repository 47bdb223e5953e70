# labstack/errors.py
# -*- coding: utf-8 -*-
"""
Exceptions raised by the bootstrapper.

Hierarchy:
    BootstrapError (base)
    ├── PreconditionError      missing tool, compose v2 absent, invalid input
    ├── ConfigurationError     settings failed validation or could not be read
    ├── ImagePullError         an image could not be pulled
    ├── OneShotTimeoutError    a one-shot container exceeded its timeout
    └── HealthCheckError       the broker never reported a running state

Best-effort operations (ownership, permissions, mount probes) never raise
these; they log a warning instead.
"""

from typing import Optional


class BootstrapError(Exception):
    """Base exception for all bootstrap failures."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class PreconditionError(BootstrapError):
    """A required tool or input is missing or invalid."""


class ConfigurationError(BootstrapError):
    """Settings could not be loaded or validated."""


class ImagePullError(BootstrapError):
    """Pulling a container image failed."""

    def __init__(self, image: str, returncode: Optional[int] = None) -> None:
        super().__init__(
            f"Failed to pull image {image}",
            details={"image": image, "returncode": returncode},
        )
        self.image = image


class OneShotTimeoutError(BootstrapError):
    """A one-shot container command ran longer than the configured timeout."""

    def __init__(self, image: str, timeout: float) -> None:
        super().__init__(
            f"One-shot command in {image} exceeded {timeout}s",
            details={"image": image, "timeout": timeout},
        )
        self.image = image
        self.timeout = timeout


class HealthCheckError(BootstrapError):
    """The first-wave service never became healthy."""

    def __init__(self, service: str, attempts: int) -> None:
        super().__init__(
            f"{service} did not reach RUNNING after {attempts} attempts. "
            "Fix the broker first (storage/perms/nosuid/FDC). Stack not started.",
            details={"service": service, "attempts": attempts},
        )
        self.service = service
        self.attempts = attempts
