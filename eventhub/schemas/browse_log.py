"""
Browse ledger request models.

Each ledger operation has its own request model, selected by the command's
``(ops, code)`` pair. The identity always comes from the envelope's ``user``;
everything else comes from ``data``.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from eventhub.exceptions import InvalidCommandError
from eventhub.schemas.command import Command, Ops, format_validation_errors

REPORT_CODE = 700
READ_CODE = 703
COUNT_CODE = 704

# Upper bound on pageNum so the row offset fits the database OFFSET
MAX_PAGE_NUM = 1_000_000


def _coerce_id(v: Any) -> Any:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return str(v)
    return v


class _BrowseRequest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    code: int
    identity: str | None = None

    @classmethod
    def from_command(cls, command: Command, anonymous_identity: str | None = None):
        """Build the request from an envelope; ``anonymous_identity`` in ``user`` means no identity."""
        identity = None if command.user == anonymous_identity else command.user
        payload = {**command.data, "code": command.code, "identity": identity}
        if command.created_at is not None:
            payload["created_at"] = command.created_at
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InvalidCommandError(
                f"Invalid data for code {command.code}",
                details={"errors": format_validation_errors(e)},
            ) from e


class BrowseReport(_BrowseRequest):
    anonymous_id: str | None = Field(None, alias="anonymousId")
    target_id: str | None = Field(None, alias="targetId")
    target_type: str | None = Field(None, alias="targetType")
    ip_address: str | None = Field(None, alias="ipAddress")
    created_at: datetime | None = None

    @field_validator("target_id", "anonymous_id", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return _coerce_id(v)


class BrowseQuery(_BrowseRequest):
    anonymous_id: str | None = Field(None, alias="anonymousId")
    user_filter: str | None = Field(None, alias="userFilter")
    target_type: str | None = Field(None, alias="targetType")
    target_id: str | None = Field(None, alias="targetId")
    start_time: datetime | None = Field(None, alias="startTime")
    end_time: datetime | None = Field(None, alias="endTime")
    page_num: int | None = Field(None, alias="pageNum", le=MAX_PAGE_NUM)
    page_size: int | None = Field(None, alias="pageSize")

    @field_validator("target_id", "anonymous_id", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return _coerce_id(v)


class BrowseCount(_BrowseRequest):
    target_id: str | list[str] | None = Field(None, alias="targetId")

    @field_validator("target_id", mode="before")
    @classmethod
    def coerce_targets(cls, v):
        if isinstance(v, (list, tuple)):
            return [_coerce_id(item) for item in v]
        return _coerce_id(v)


REQUEST_MODELS: dict[tuple[Ops, int], type[_BrowseRequest]] = {
    (Ops.CREATE, REPORT_CODE): BrowseReport,
    (Ops.READ, READ_CODE): BrowseQuery,
    (Ops.READ, COUNT_CODE): BrowseCount,
}


def parse_browse_request(command: Command, anonymous_identity: str | None = None) -> _BrowseRequest:
    """Select the request model for the command's (ops, code) and build it."""
    model = REQUEST_MODELS.get((command.ops, command.code))
    if model is None:
        raise InvalidCommandError(f"No browse operation for ops={command.ops.value} code={command.code}")
    return model.from_command(command, anonymous_identity)
