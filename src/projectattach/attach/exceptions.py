"""Exceptions for the attach module."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from projectattach.attach.models import ResultCode


class AttachError(Exception):
    """Base exception for attach errors."""


class AttachFailure(AttachError):
    """A single attach attempt failed.

    Raised by a config source to report a non-success outcome. The batch
    records the code on the entry and moves on.
    """

    def __init__(self, code: ResultCode, message: str = "") -> None:
        self.code = code
        super().__init__(message or f"Attach failed: {code}")


class InvalidTransitionError(AttachError):
    """An entry result was changed in a way its state machine forbids."""


class BatchInProgressError(AttachError):
    """The batch is still being processed."""


class BatchNotFoundError(AttachError):
    """No batch is registered under the given ID."""
