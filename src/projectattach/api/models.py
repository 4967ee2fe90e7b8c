"""Pydantic models for REST API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, TypeVar

from pydantic import BaseModel

from projectattach.attach.models import BatchStatus, NextStep, ResultState

if TYPE_CHECKING:
    from projectattach.attach.models import BatchOutcome, SelectionEntry
    from projectattach.attach.session import AttachSession

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    data: T | None = None
    error: str | None = None


class ProjectResponse(BaseModel):
    """A selected project."""

    name: str
    url: str
    platforms: list[str]
    description: str


class EntryResponse(BaseModel):
    """A batch entry and its result."""

    project: ProjectResponse
    result: ResultState


class BatchOutcomeResponse(BaseModel):
    """Summary of a finished run."""

    status: BatchStatus
    attempted: int
    succeeded: int
    conflicts: int
    errors: int
    has_unresolved_conflicts: bool
    next_step: NextStep


class BatchStatusResponse(BaseModel):
    """Current state of a batch."""

    batch_id: str
    running: bool
    entries: list[EntryResponse]
    outcome: BatchOutcomeResponse | None = None


class ConflictsResponse(BaseModel):
    """Aggregate conflict state of a batch."""

    batch_id: str
    has_unresolved_conflicts: bool
    next_step: NextStep


class BatchActionResponse(BaseModel):
    """Response for batch control actions."""

    message: str


# Conversion helpers


def entry_to_response(entry: SelectionEntry) -> EntryResponse:
    """Convert a SelectionEntry to its API model."""
    d = entry.descriptor
    return EntryResponse(
        project=ProjectResponse(
            name=d.name,
            url=d.url,
            platforms=list(d.platforms),
            description=d.description,
        ),
        result=entry.result,
    )


def outcome_to_response(outcome: BatchOutcome) -> BatchOutcomeResponse:
    """Convert a BatchOutcome to its API model."""
    return BatchOutcomeResponse(
        status=outcome.status,
        attempted=outcome.attempted,
        succeeded=outcome.succeeded,
        conflicts=outcome.conflicts,
        errors=outcome.errors,
        has_unresolved_conflicts=outcome.has_unresolved_conflicts,
        next_step=outcome.next_step,
    )


def session_to_response(session: AttachSession) -> BatchStatusResponse:
    """Convert an AttachSession to its API status model."""
    outcome = session.outcome
    running = session.running
    return BatchStatusResponse(
        batch_id=session.batch_id,
        running=running,
        # Entries belong to the run task until it finishes
        entries=[] if running else [entry_to_response(e) for e in session.source.entries()],
        outcome=outcome_to_response(outcome) if outcome is not None else None,
    )
