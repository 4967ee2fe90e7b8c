"""Attachment orchestrator - sequential batch attach state machine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from projectattach.attach.exceptions import AttachFailure
from projectattach.attach.models import (
    BatchOutcome,
    BatchStatus,
    ResultCode,
    ResultState,
)
from projectattach.config import AttachSettings
from projectattach.logging import sanitize_for_log, truncate_output

if TYPE_CHECKING:
    from projectattach.attach.models import ProjectDescriptor, SelectionEntry
    from projectattach.attach.source import ProjectConfigSource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[["ProjectDescriptor"], None]


class AttachmentOrchestrator:
    """Drives a batch from "selection finalized" to "aggregate outcome known".

    A run:
    - Waits until the config source reports readiness
    - Attaches every READY entry, one at a time, in order
    - Records each outcome on its entry and keeps going on failure
    - Summarizes the batch in a BatchOutcome

    Cancellation is cooperative: call cancel() and the run stops before the
    next attach, keeping whatever it already recorded. An orchestrator drives
    a single run; cancel() may be called before run() starts and is honoured,
    so the flag is never reset. Use a new orchestrator for each run.
    """

    def __init__(self, settings: AttachSettings | None = None) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Poll interval and readiness timeout. Defaults apply if None.
        """
        self.settings = settings or AttachSettings()
        self._cancelled = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Request cancellation of the current run."""
        if not self._cancelled.is_set():
            logger.info("Cancellation requested")
        self._cancelled.set()

    async def run(
        self,
        source: ProjectConfigSource,
        on_progress: ProgressCallback | None = None,
    ) -> BatchOutcome:
        """Attach every READY entry of a batch.

        Args:
            source: Config source providing readiness, entries and attach.
            on_progress: Called with each project's descriptor right before
                its attach attempt.

        Returns:
            BatchOutcome for this run.
        """
        logger.info("Attaching batch: %d projects selected", len(source.entries()))

        if not await self._wait_for_config(source):
            status = BatchStatus.CANCELLED if self.cancelled else BatchStatus.TIMED_OUT
            return self._finish(source, BatchOutcome(status=status))

        outcome = BatchOutcome(status=BatchStatus.COMPLETED)
        for entry in source.entries():
            if self.cancelled:
                outcome.status = BatchStatus.CANCELLED
                break

            # Skip entries already tried or not queued for this run
            if entry.result != ResultState.READY:
                continue

            self._notify(on_progress, entry)
            code = await self._attach(source, entry)
            entry.record(code)
            outcome.count(code)

            if code != ResultCode.SUCCESS:
                logger.error("Attach of %s returned %s", entry.descriptor.name, code)

        return self._finish(source, outcome)

    @staticmethod
    def has_unresolved_conflicts(source: ProjectConfigSource) -> bool:
        """Whether any entry ended in CONFLICT or ERROR.

        Args:
            source: Config source whose entries to inspect.

        Returns:
            True if at least one entry needs resolution.
        """
        return any(entry.result.is_unresolved for entry in source.entries())

    async def _wait_for_config(self, source: ProjectConfigSource) -> bool:
        """Poll until config retrieval has finished.

        Returns:
            True once the source is ready; False on cancellation or timeout.
        """
        loop = asyncio.get_running_loop()
        timeout = self.settings.ready_timeout
        deadline = None if timeout is None else loop.time() + timeout

        while not source.is_config_ready():
            if self.cancelled:
                logger.info("Cancelled while waiting for project config")
                return False

            wait = self.settings.poll_interval
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.warning("Project config not ready after %.1fs, giving up", timeout)
                    return False
                wait = min(wait, remaining)

            logger.debug("Project config retrieval has not finished yet, wait...")
            try:
                await asyncio.wait_for(self._cancelled.wait(), timeout=wait)
            except TimeoutError:
                continue

        logger.debug("Project config retrieval finished, continue with attach")
        return True

    async def _attach(self, source: ProjectConfigSource, entry: SelectionEntry) -> ResultCode:
        """Make one attach attempt, folding failures into a result code."""
        descriptor = entry.descriptor
        logger.debug("Trying: %s (%s)", descriptor.name, descriptor.url)
        try:
            return await source.attach(descriptor, retry=False)
        except AttachFailure as e:
            logger.warning("Attach of %s failed: %s", descriptor.name, _describe(e))
            return e.code
        except Exception as e:
            logger.exception("Unexpected error attaching %s: %s", descriptor.name, _describe(e))
            return ResultCode.ERROR

    def _notify(self, on_progress: ProgressCallback | None, entry: SelectionEntry) -> None:
        if on_progress is None:
            return
        try:
            on_progress(entry.descriptor)
        except Exception as e:
            # Non-fatal - observer errors are only logged
            logger.warning("Progress callback failed for %s: %s", entry.descriptor.name, e)

    def _finish(self, source: ProjectConfigSource, outcome: BatchOutcome) -> BatchOutcome:
        outcome.has_unresolved_conflicts = self.has_unresolved_conflicts(source)
        logger.info(
            "Batch %s: attempted=%d succeeded=%d conflicts=%d errors=%d",
            outcome.status,
            outcome.attempted,
            outcome.succeeded,
            outcome.conflicts,
            outcome.errors,
        )
        return outcome


def _describe(error: Exception) -> str:
    """Error text safe to log: credentials redacted, length capped."""
    return truncate_output(sanitize_for_log(str(error)), max_length=500)
