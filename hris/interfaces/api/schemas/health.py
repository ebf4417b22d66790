"""Pydantic models for the health endpoint."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    notification_service: str
    event_bus_running: bool


__all__ = ["HealthResponse"]
