"""Recoverable errors raised by the engines and services.

Every error here is user-facing: the API renders it as a dismissible message
and nothing is retried automatically.
"""

from __future__ import annotations


class HubError(Exception):
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationFailed(HubError):
    """Bad user input, rejected before any write."""

    status_code = 400


class PreconditionFailed(HubError):
    """The action is not allowed in the current state (wrong day, no attempts left, ...)."""

    status_code = 409


class NotFound(HubError):
    status_code = 404
