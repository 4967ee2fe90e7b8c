"""Attach sessions - run batches in the background and track their outcome."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from projectattach.attach.exceptions import BatchInProgressError, BatchNotFoundError
from projectattach.attach.orchestrator import AttachmentOrchestrator

if TYPE_CHECKING:
    from projectattach.api.events import EventManager
    from projectattach.attach.models import BatchOutcome, ProjectDescriptor
    from projectattach.attach.orchestrator import ProgressCallback
    from projectattach.attach.source import ProjectConfigSource
    from projectattach.config import AttachSettings

logger = logging.getLogger(__name__)


class AttachSession:
    """Hosts attachment runs for one batch.

    Each start() launches a fresh orchestrator as an asyncio task. The batch
    entries belong to that task until it finishes; reading the aggregate
    before then raises BatchInProgressError.
    """

    def __init__(
        self,
        batch_id: str,
        source: ProjectConfigSource,
        settings: AttachSettings | None = None,
        event_manager: EventManager | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            batch_id: Identifier used in logs and events.
            source: Config source holding the batch.
            settings: Settings passed to each orchestrator.
            event_manager: Optional EventManager receiving progress events.
        """
        self.batch_id = batch_id
        self.source = source
        self.settings = settings
        self.event_manager = event_manager
        self._orchestrator: AttachmentOrchestrator | None = None
        self._task: asyncio.Task[BatchOutcome] | None = None
        self._outcome: BatchOutcome | None = None

    @property
    def running(self) -> bool:
        """Whether a run is in flight."""
        return self._task is not None and not self._task.done()

    @property
    def outcome(self) -> BatchOutcome | None:
        """Outcome of the last finished run, if any."""
        return self._outcome

    def start(self, on_progress: ProgressCallback | None = None) -> asyncio.Task[BatchOutcome]:
        """Start a run in the background.

        Must be called from a running event loop.

        Args:
            on_progress: Called with each project's descriptor before its attach.

        Returns:
            The task driving the run.

        Raises:
            BatchInProgressError: If a run is already in flight.
        """
        if self.running:
            raise BatchInProgressError(f"Batch {self.batch_id} is already running")

        self._orchestrator = AttachmentOrchestrator(self.settings)
        self._outcome = None
        self._task = asyncio.create_task(
            self._run(self._orchestrator, on_progress),
            name=f"attach-{self.batch_id}",
        )
        logger.info("Started attach run for batch %s", self.batch_id)
        return self._task

    def cancel(self) -> None:
        """Request cancellation of the in-flight run, if any."""
        if self._orchestrator is not None and self.running:
            logger.info("Cancelling attach run for batch %s", self.batch_id)
            self._orchestrator.cancel()

    async def wait(self) -> BatchOutcome:
        """Wait for the current run to finish.

        Returns:
            The run's outcome.

        Raises:
            BatchInProgressError: If the session was never started.
        """
        if self._task is None:
            raise BatchInProgressError(f"Batch {self.batch_id} has not been started")
        return await self._task

    def query_conflicts(self) -> bool:
        """Whether any entry of the batch ended in CONFLICT or ERROR.

        Raises:
            BatchInProgressError: If a run is still in flight.
        """
        if self.running:
            raise BatchInProgressError(f"Batch {self.batch_id} is still running")
        return AttachmentOrchestrator.has_unresolved_conflicts(self.source)

    async def _run(
        self,
        orchestrator: AttachmentOrchestrator,
        on_progress: ProgressCallback | None,
    ) -> BatchOutcome:
        def progress(descriptor: ProjectDescriptor) -> None:
            if self.event_manager is not None:
                self.event_manager.emit_project_attaching(self.batch_id, descriptor)
            if on_progress is not None:
                on_progress(descriptor)

        if self.event_manager is not None:
            self.event_manager.emit_batch_started(self.batch_id, len(self.source.entries()))

        try:
            outcome = await orchestrator.run(self.source, on_progress=progress)
        except asyncio.CancelledError:
            logger.info("Attach task for batch %s was cancelled", self.batch_id)
            raise

        self._outcome = outcome
        if self.event_manager is not None:
            self.event_manager.emit_batch_completed(self.batch_id, outcome)
        return outcome


class SessionRegistry:
    """Tracks attach sessions by batch ID."""

    def __init__(
        self,
        settings: AttachSettings | None = None,
        event_manager: EventManager | None = None,
    ) -> None:
        self.settings = settings
        self.event_manager = event_manager
        self._sessions: dict[str, AttachSession] = {}

    def use_event_manager(self, event_manager: EventManager) -> None:
        """Send events of this registry's sessions to event_manager.

        Sessions registered earlier without an EventManager pick it up too.
        """
        self.event_manager = event_manager
        for session in self._sessions.values():
            if session.event_manager is None:
                session.event_manager = event_manager

    def register(self, batch_id: str, source: ProjectConfigSource) -> AttachSession:
        """Create a session for a batch.

        Args:
            batch_id: Unique batch identifier.
            source: Config source holding the batch.

        Returns:
            The new session.

        Raises:
            BatchInProgressError: If a session with this ID is running.
        """
        existing = self._sessions.get(batch_id)
        if existing is not None and existing.running:
            raise BatchInProgressError(f"Batch {batch_id} is already running")

        session = AttachSession(
            batch_id,
            source,
            settings=self.settings,
            event_manager=self.event_manager,
        )
        self._sessions[batch_id] = session
        logger.info("Registered batch %s (%d projects)", batch_id, len(source.entries()))
        return session

    def get(self, batch_id: str) -> AttachSession:
        """Get the session for a batch.

        Raises:
            BatchNotFoundError: If no batch is registered under this ID.
        """
        session = self._sessions.get(batch_id)
        if session is None:
            raise BatchNotFoundError(f"Batch {batch_id} not found")
        return session

    def remove(self, batch_id: str) -> None:
        """Drop a batch, cancelling its run if one is in flight."""
        session = self._sessions.pop(batch_id, None)
        if session is not None:
            session.cancel()
            logger.info("Removed batch %s", batch_id)

    def batch_ids(self) -> list[str]:
        """IDs of all registered batches."""
        return list(self._sessions)

    def cancel_all(self) -> None:
        """Cancel every in-flight run."""
        for session in self._sessions.values():
            session.cancel()
