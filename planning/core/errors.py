from __future__ import annotations


class PlanningError(Exception):
    """Base class for errors raised by the scheduling services."""


class ValidationError(PlanningError, ValueError):
    """Malformed input such as an inverted time range or an unknown mode."""


class NotFoundError(PlanningError, LookupError):
    """Target is absent or belongs to another tenant; the two are indistinguishable."""


class AuthorizationError(PlanningError, PermissionError):
    """Caller context is missing or lacks standing for the target."""
