"""Project config source - the collaborator an attachment run drives."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from projectattach.attach.models import (
    ProjectDescriptor,
    ResultCode,
    ResultState,
    SelectionEntry,
)

AttachFunc = Callable[[ProjectDescriptor, bool], Awaitable[ResultCode]]


class ProjectConfigSource(Protocol):
    """Interface for the service that retrieves project configs and attaches."""

    def is_config_ready(self) -> bool:
        """Whether config retrieval for the batch has finished.

        Non-blocking. Once true, stays true for the rest of the run.
        """
        ...

    def entries(self) -> Sequence[SelectionEntry]:
        """Selected entries, in processing order."""
        ...

    async def attach(self, descriptor: ProjectDescriptor, retry: bool) -> ResultCode:
        """Make one attach attempt for a project."""
        ...


@dataclass
class BatchState:
    """In-memory config source.

    Holds the selected entries and the readiness flag; delegates the attach
    call itself to ``attach_func``.
    """

    selected: list[SelectionEntry]
    attach_func: AttachFunc
    config_ready: bool = False
    _attach_calls: int = field(default=0, init=False, repr=False)

    @classmethod
    def from_descriptors(
        cls,
        descriptors: Iterable[ProjectDescriptor],
        attach_func: AttachFunc,
        state: ResultState = ResultState.READY,
        config_ready: bool = False,
    ) -> BatchState:
        """Build a batch with every descriptor in the same initial state."""
        selected = [SelectionEntry(descriptor=d, result=state) for d in descriptors]
        return cls(selected=selected, attach_func=attach_func, config_ready=config_ready)

    @property
    def attach_calls(self) -> int:
        """Number of attach attempts made against this batch."""
        return self._attach_calls

    def mark_config_ready(self) -> None:
        """Signal that config retrieval finished."""
        self.config_ready = True

    def is_config_ready(self) -> bool:
        return self.config_ready

    def entries(self) -> list[SelectionEntry]:
        return self.selected

    async def attach(self, descriptor: ProjectDescriptor, retry: bool) -> ResultCode:
        self._attach_calls += 1
        return await self.attach_func(descriptor, retry)
