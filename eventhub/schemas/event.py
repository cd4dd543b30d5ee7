from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventUpdate(BaseModel):
    event_id: int = Field(..., alias="eventId")
    data: dict[str, Any] | None = None
    tags: list[Any] | None = None

    model_config = ConfigDict(populate_by_name=True)


class EventResponse(BaseModel):
    id: int
    user: str
    ops: str
    code: int
    data: dict[str, Any] | None = None
    tags: list[Any] | None = None
    client_created_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
