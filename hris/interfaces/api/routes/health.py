from fastapi import APIRouter, Request

from hris.interfaces.api.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    service = getattr(request.app.state, "notification_service", None)
    bus = getattr(request.app.state, "event_bus", None)
    return HealthResponse(
        status="ok",
        notification_service=service.state.value if service is not None else "absent",
        event_bus_running=bool(bus is not None and bus.is_running),
    )
