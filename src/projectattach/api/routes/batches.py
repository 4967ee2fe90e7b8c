"""Batch control endpoints."""

from fastapi import APIRouter

from projectattach.api.dependencies import RegistryDep
from projectattach.api.models import (
    APIResponse,
    BatchActionResponse,
    BatchStatusResponse,
    ConflictsResponse,
    session_to_response,
)
from projectattach.attach import NextStep

router = APIRouter(prefix="/batches", tags=["batches"])


@router.get("", response_model=APIResponse[list[str]])
async def list_batches(registry: RegistryDep) -> APIResponse[list[str]]:
    """List registered batch IDs."""
    return APIResponse(data=registry.batch_ids())


@router.get("/{batch_id}", response_model=APIResponse[BatchStatusResponse])
async def get_batch(batch_id: str, registry: RegistryDep) -> APIResponse[BatchStatusResponse]:
    """Get run state, last outcome and, when idle, the entries of a batch."""
    session = registry.get(batch_id)
    return APIResponse(data=session_to_response(session))


@router.post("/{batch_id}/start", response_model=APIResponse[BatchActionResponse])
async def start_batch(batch_id: str, registry: RegistryDep) -> APIResponse[BatchActionResponse]:
    """Start attaching the batch in the background."""
    # Raises BatchInProgressError if a run is in flight
    registry.get(batch_id).start()
    return APIResponse(data=BatchActionResponse(message="Batch started"))


@router.post("/{batch_id}/cancel", response_model=APIResponse[BatchActionResponse])
async def cancel_batch(batch_id: str, registry: RegistryDep) -> APIResponse[BatchActionResponse]:
    """Request cancellation of the batch run."""
    session = registry.get(batch_id)
    if not session.running:
        return APIResponse(data=BatchActionResponse(message="Batch not running"))

    session.cancel()
    return APIResponse(data=BatchActionResponse(message="Cancellation requested"))


@router.get("/{batch_id}/conflicts", response_model=APIResponse[ConflictsResponse])
async def get_conflicts(batch_id: str, registry: RegistryDep) -> APIResponse[ConflictsResponse]:
    """Whether the batch needs conflict resolution, and where to go next."""
    # Raises BatchInProgressError while the run owns the entries
    conflicts = registry.get(batch_id).query_conflicts()
    next_step = NextStep.RESOLVE_CONFLICTS if conflicts else NextStep.PROJECTS
    return APIResponse(
        data=ConflictsResponse(
            batch_id=batch_id,
            has_unresolved_conflicts=conflicts,
            next_step=next_step,
        )
    )
