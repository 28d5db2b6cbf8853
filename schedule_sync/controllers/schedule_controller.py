# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Schedule sync endpoints.
Thin HTTP layer — delegates ALL logic to ScheduleService.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from schedule_sync.core.dependencies import get_schedule_service
from schedule_sync.core.errors import (
    BlockedByOpenIncidents,
    NotFoundError,
    RemoteError,
    ScheduleValidationError,
)
from schedule_sync.schemas.schedule import (
    BlockedDeletionResponse,
    ScheduleApplyRequest,
    ScheduleDeleteResponse,
    ScheduleImportRequest,
    SchedulePlanResponse,
)
from schedule_sync.services.schedule_service import ScheduleService

router = APIRouter(prefix="/api/v1", tags=["Schedules"])


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ScheduleValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


@router.post("/schedules", status_code=201)
def create_schedule(
    payload: ScheduleApplyRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Create a schedule from its declared document."""
    try:
        return service.create_schedule(payload)
    except (RemoteError, ScheduleValidationError) as e:
        raise _http_error(e)


@router.get("/schedules")
def list_schedules(
    service: ScheduleService = Depends(get_schedule_service),
):
    """List every schedule tracked in the state store."""
    return service.list_schedules()


@router.post("/schedules/import", status_code=201)
def import_schedule(
    payload: ScheduleImportRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Adopt an existing remote schedule by id."""
    try:
        return service.import_schedule(payload.id)
    except (RemoteError, ScheduleValidationError) as e:
        raise _http_error(e)


@router.get("/schedules/{schedule_id}")
def get_schedule(
    schedule_id: str,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Refresh and return a schedule's state."""
    try:
        return service.get_schedule(schedule_id)
    except (RemoteError, ScheduleValidationError) as e:
        raise _http_error(e)


@router.put("/schedules/{schedule_id}")
def update_schedule(
    schedule_id: str,
    payload: ScheduleApplyRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Converge a schedule to its declared document. Dropped layers are end-dated."""
    try:
        return service.update_schedule(schedule_id, payload)
    except (RemoteError, ScheduleValidationError) as e:
        raise _http_error(e)


@router.post("/schedules/{schedule_id}/plan", response_model=SchedulePlanResponse)
def plan_schedule(
    schedule_id: str,
    payload: ScheduleApplyRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Show what an update would change without writing anything."""
    try:
        return service.plan_schedule(schedule_id, payload)
    except (RemoteError, ScheduleValidationError) as e:
        raise _http_error(e)


@router.delete(
    "/schedules/{schedule_id}",
    response_model=ScheduleDeleteResponse,
    responses={409: {"model": BlockedDeletionResponse}},
)
def delete_schedule(
    schedule_id: str,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Delete a schedule once no open incident blocks it."""
    try:
        return service.delete_schedule(schedule_id)
    except BlockedByOpenIncidents as e:
        return JSONResponse(
            status_code=409,
            content={
                "error": "blocked_by_open_incidents",
                "detail": str(e),
                "schedule_id": e.schedule_id,
                "incidents": e.incident_urls,
            },
        )
    except RemoteError as e:
        raise _http_error(e)
