"""Attach package - batch attachment of selected projects."""

from projectattach.attach.exceptions import (
    AttachError,
    AttachFailure,
    BatchInProgressError,
    BatchNotFoundError,
    InvalidTransitionError,
)
from projectattach.attach.models import (
    BatchOutcome,
    BatchStatus,
    NextStep,
    ProjectDescriptor,
    ResultCode,
    ResultState,
    SelectionEntry,
)
from projectattach.attach.orchestrator import AttachmentOrchestrator
from projectattach.attach.session import AttachSession, SessionRegistry
from projectattach.attach.source import BatchState, ProjectConfigSource

__all__ = [
    "AttachError",
    "AttachFailure",
    "AttachSession",
    "AttachmentOrchestrator",
    "BatchInProgressError",
    "BatchNotFoundError",
    "BatchOutcome",
    "BatchState",
    "BatchStatus",
    "InvalidTransitionError",
    "NextStep",
    "ProjectConfigSource",
    "ProjectDescriptor",
    "ResultCode",
    "ResultState",
    "SelectionEntry",
    "SessionRegistry",
]
