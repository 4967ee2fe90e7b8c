"""Unit tests for AttachSession and SessionRegistry."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from projectattach.api.events import EventManager
from projectattach.attach import (
    AttachmentOrchestrator,
    AttachSession,
    BatchInProgressError,
    BatchNotFoundError,
    BatchStatus,
    ProjectDescriptor,
    ResultCode,
    ResultState,
    SessionRegistry,
)

READY = ResultState.READY


@pytest.fixture
def mock_event_manager() -> MagicMock:
    """Create a mock EventManager."""
    return MagicMock(spec=EventManager)


@pytest.mark.unit
class TestAttachSession:
    """Tests for AttachSession."""

    @pytest.mark.asyncio
    async def test_start_runs_batch_in_background(self, make_batch, fast_settings) -> None:
        """start() returns immediately; wait() yields the outcome."""
        batch, attach = make_batch([("Alpha", READY), ("Beta", READY)])
        session = AttachSession("batch-1", batch, settings=fast_settings)

        task = session.start()
        assert session.running is True

        outcome = await session.wait()

        assert task.done()
        assert session.running is False
        assert session.outcome is outcome
        assert outcome.status == BatchStatus.COMPLETED
        assert attach.names == ["Alpha", "Beta"]

    @pytest.mark.asyncio
    async def test_start_while_running_rejected(self, make_batch, fast_settings) -> None:
        """Only one run at a time."""
        batch, _ = make_batch([("Alpha", READY)], config_ready=False)
        session = AttachSession("batch-1", batch, settings=fast_settings)
        session.start()

        with pytest.raises(BatchInProgressError):
            session.start()

        session.cancel()
        await session.wait()

    @pytest.mark.asyncio
    async def test_query_conflicts_blocked_while_running(self, make_batch, fast_settings) -> None:
        """The aggregate cannot be read while the run owns the entries."""
        batch, _ = make_batch(
            [("Alpha", READY)], codes={"Alpha": ResultCode.CONFLICT}, config_ready=False
        )
        session = AttachSession("batch-1", batch, settings=fast_settings)
        session.start()

        with pytest.raises(BatchInProgressError):
            session.query_conflicts()

        batch.mark_config_ready()
        await session.wait()

        assert session.query_conflicts() is True

    def test_query_conflicts_uses_orchestrator_aggregate(self, make_batch) -> None:
        """The session answers with the orchestrator's aggregate query."""
        batch, _ = make_batch([("Alpha", ResultState.SUCCESS)])
        session = AttachSession("batch-1", batch)

        with patch.object(
            AttachmentOrchestrator, "has_unresolved_conflicts", return_value=True
        ) as query:
            assert session.query_conflicts() is True

        query.assert_called_once_with(batch)

    @pytest.mark.asyncio
    async def test_start_after_cancel_runs_again(self, make_batch, fast_settings) -> None:
        """Each start gets a fresh orchestrator, so an earlier cancel does not stick."""
        batch, attach = make_batch([("Alpha", READY)], config_ready=False)
        session = AttachSession("batch-1", batch, settings=fast_settings)
        session.start()
        session.cancel()
        first = await asyncio.wait_for(session.wait(), timeout=2.0)

        batch.mark_config_ready()
        session.start()
        second = await asyncio.wait_for(session.wait(), timeout=2.0)

        assert first.status == BatchStatus.CANCELLED
        assert second.status == BatchStatus.COMPLETED
        assert attach.names == ["Alpha"]

    @pytest.mark.asyncio
    async def test_cancel_returns_partial_outcome(self, make_batch, fast_settings) -> None:
        """Cancelling a waiting run ends it as CANCELLED with entries intact."""
        batch, attach = make_batch([("Alpha", READY)], config_ready=False)
        session = AttachSession("batch-1", batch, settings=fast_settings)
        session.start()
        await asyncio.sleep(0.02)

        session.cancel()
        outcome = await asyncio.wait_for(session.wait(), timeout=2.0)

        assert outcome.status == BatchStatus.CANCELLED
        assert attach.calls == []
        assert batch.entries()[0].result == READY

    @pytest.mark.asyncio
    async def test_restart_after_requeue(self, make_batch, fast_settings) -> None:
        """Entries re-marked READY are attached by the next run."""
        batch, attach = make_batch([("Alpha", READY)], codes={"Alpha": ResultCode.ERROR})
        session = AttachSession("batch-1", batch, settings=fast_settings)
        session.start()
        await session.wait()
        assert session.query_conflicts() is True

        attach.codes["Alpha"] = ResultCode.SUCCESS
        batch.entries()[0].result = READY
        session.start()
        outcome = await session.wait()

        assert outcome.succeeded == 1
        assert session.query_conflicts() is False
        assert attach.names == ["Alpha", "Alpha"]

    @pytest.mark.asyncio
    async def test_wait_before_start_rejected(self, make_batch) -> None:
        """wait() needs a started run."""
        batch, _ = make_batch([("Alpha", READY)])
        session = AttachSession("batch-1", batch)

        with pytest.raises(BatchInProgressError):
            await session.wait()

    @pytest.mark.asyncio
    async def test_events_emitted(
        self, make_batch, fast_settings, mock_event_manager: MagicMock
    ) -> None:
        """Start, per-project progress and completion are emitted."""
        batch, _ = make_batch([("Alpha", READY), ("Beta", ResultState.PENDING)])
        session = AttachSession(
            "batch-1", batch, settings=fast_settings, event_manager=mock_event_manager
        )
        progress: list[ProjectDescriptor] = []

        session.start(on_progress=progress.append)
        outcome = await session.wait()

        mock_event_manager.emit_batch_started.assert_called_once_with("batch-1", 2)
        mock_event_manager.emit_project_attaching.assert_called_once_with(
            "batch-1", batch.entries()[0].descriptor
        )
        mock_event_manager.emit_batch_completed.assert_called_once_with("batch-1", outcome)
        assert progress == [batch.entries()[0].descriptor]


@pytest.mark.unit
class TestSessionRegistry:
    """Tests for SessionRegistry."""

    def test_register_and_get(self, make_batch) -> None:
        """Registered sessions are retrievable by ID."""
        registry = SessionRegistry()
        batch, _ = make_batch([("Alpha", READY)])

        session = registry.register("batch-1", batch)

        assert registry.get("batch-1") is session
        assert session.source is batch
        assert registry.batch_ids() == ["batch-1"]

    def test_get_unknown_raises(self) -> None:
        """Unknown IDs raise BatchNotFoundError."""
        with pytest.raises(BatchNotFoundError):
            SessionRegistry().get("missing")

    def test_sessions_share_registry_settings(self, make_batch, fast_settings) -> None:
        """Sessions inherit the registry's settings and event manager."""
        event_manager = EventManager()
        registry = SessionRegistry(settings=fast_settings, event_manager=event_manager)
        batch, _ = make_batch([("Alpha", READY)])

        session = registry.register("batch-1", batch)

        assert session.settings is fast_settings
        assert session.event_manager is event_manager

    def test_use_event_manager_updates_existing_sessions(self, make_batch) -> None:
        """Sessions registered before an EventManager exists pick it up."""
        registry = SessionRegistry()
        batch, _ = make_batch([("Alpha", READY)])
        session = registry.register("batch-1", batch)
        event_manager = EventManager()

        registry.use_event_manager(event_manager)

        assert session.event_manager is event_manager

    @pytest.mark.asyncio
    async def test_register_over_running_batch_rejected(self, make_batch, fast_settings) -> None:
        """A running batch cannot be replaced."""
        registry = SessionRegistry(settings=fast_settings)
        batch, _ = make_batch([("Alpha", READY)], config_ready=False)
        session = registry.register("batch-1", batch)
        session.start()

        with pytest.raises(BatchInProgressError):
            registry.register("batch-1", batch)

        registry.remove("batch-1")
        outcome = await asyncio.wait_for(session.wait(), timeout=2.0)

        assert outcome.status == BatchStatus.CANCELLED
        assert registry.batch_ids() == []

    @pytest.mark.asyncio
    async def test_cancel_all(self, make_batch, fast_settings) -> None:
        """Every running batch is cancelled; registrations stay."""
        registry = SessionRegistry(settings=fast_settings)
        sessions = [
            registry.register(batch_id, make_batch([("Alpha", READY)], config_ready=False)[0])
            for batch_id in ("batch-1", "batch-2")
        ]
        for session in sessions:
            session.start()

        registry.cancel_all()
        outcomes = [await asyncio.wait_for(s.wait(), timeout=2.0) for s in sessions]

        assert [o.status for o in outcomes] == [BatchStatus.CANCELLED, BatchStatus.CANCELLED]
        assert registry.batch_ids() == ["batch-1", "batch-2"]
