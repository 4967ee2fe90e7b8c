"""Data models for the attach module."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from projectattach.attach.exceptions import InvalidTransitionError


class ResultState(StrEnum):
    """Per-entry result within a batch."""

    PENDING = "pending"
    READY = "ready"
    SUCCESS = "success"
    CONFLICT = "conflict"
    ERROR = "error"

    @property
    def is_unresolved(self) -> bool:
        """Whether this state needs user-driven resolution."""
        return self in (ResultState.CONFLICT, ResultState.ERROR)


class ResultCode(StrEnum):
    """Outcome of one external attach attempt."""

    SUCCESS = "success"
    CONFLICT = "conflict"
    ERROR = "error"


class BatchStatus(StrEnum):
    """How a batch run ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


class NextStep(StrEnum):
    """Where the presentation layer goes after a batch."""

    RESOLVE_CONFLICTS = "resolve_conflicts"
    PROJECTS = "projects"


@dataclass(frozen=True)
class ProjectDescriptor:
    """Identity of a remote project.

    Attributes:
        name: Display name of the project.
        url: Project endpoint (master URL).
        platforms: Platforms the project supplies applications for.
        description: Short description shown while attaching.
    """

    name: str
    url: str
    platforms: tuple[str, ...] = ()
    description: str = ""


@dataclass
class SelectionEntry:
    """One project of a batch and its result.

    Attributes:
        descriptor: The selected project.
        result: Current result. Only READY entries are processed by a run.
    """

    descriptor: ProjectDescriptor
    result: ResultState = ResultState.PENDING

    def record(self, code: ResultCode) -> None:
        """Apply the outcome of an attach attempt.

        Args:
            code: The attach outcome.

        Raises:
            InvalidTransitionError: If the entry was not READY.
        """
        if self.result != ResultState.READY:
            raise InvalidTransitionError(
                f"Cannot record {code} for {self.descriptor.name!r} in state {self.result}"
            )
        self.result = ResultState(code.value)


@dataclass
class BatchOutcome:
    """Summary of a batch run.

    Attributes:
        status: How the run ended.
        attempted: Entries attached during this run.
        succeeded: Attempts that returned SUCCESS.
        conflicts: Attempts that returned CONFLICT.
        errors: Attempts that returned ERROR.
        has_unresolved_conflicts: Whether any entry of the batch, including
            ones resolved by earlier runs, is in CONFLICT or ERROR.
    """

    status: BatchStatus
    attempted: int = 0
    succeeded: int = 0
    conflicts: int = 0
    errors: int = 0
    has_unresolved_conflicts: bool = False

    @property
    def next_step(self) -> NextStep:
        """Navigation target for the presentation layer."""
        if self.has_unresolved_conflicts:
            return NextStep.RESOLVE_CONFLICTS
        return NextStep.PROJECTS

    def count(self, code: ResultCode) -> None:
        """Tally one attach attempt."""
        self.attempted += 1
        match code:
            case ResultCode.SUCCESS:
                self.succeeded += 1
            case ResultCode.CONFLICT:
                self.conflicts += 1
            case ResultCode.ERROR:
                self.errors += 1
