"""
Command Envelope

Decodes transport frames of the form ``[<reserved>, <reserved>, {...}]`` into
typed ``Command`` objects and defines the ``CommandResult`` sent back.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError, field_validator

from eventhub.exceptions import EventHubError, InvalidCommandError


class Ops(str, Enum):
    CREATE = "C"
    READ = "R"
    UPDATE = "U"
    DELETE = "D"


class Command(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    ops: Ops
    code: StrictInt
    user: str = Field(..., min_length=1)
    sig: str | None = None
    created_at: datetime | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    tags: list[Any] = Field(default_factory=list)

    @field_validator("data", "tags", mode="before")
    @classmethod
    def none_as_empty(cls, v, info):
        if v is None:
            return {} if info.field_name == "data" else []
        return v


class CommandResult(BaseModel):
    """Outcome of one command, relayed to the caller whatever the outcome."""

    code: int = 200
    message: str = "OK"
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code < 400

    @classmethod
    def from_error(cls, exc: EventHubError) -> "CommandResult":
        return cls(code=exc.status_code, message=exc.message, data=exc.details or None)


def format_validation_errors(exc: ValidationError) -> list[dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]


def decode_frame(raw: str | bytes) -> Command:
    """
    Parse one transport frame into a Command.

    Raises:
        InvalidCommandError: if the frame is not JSON, has the wrong shape,
            or lacks ops/code/user.
    """
    try:
        frame = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise InvalidCommandError("Frame is not valid JSON") from e

    if not isinstance(frame, list) or len(frame) < 3 or not isinstance(frame[2], dict):
        raise InvalidCommandError("Frame must be an array whose third element is the command object")

    try:
        return Command.model_validate(frame[2])
    except ValidationError as e:
        raise InvalidCommandError(
            "Invalid command: ops, code and user are required",
            details={"errors": format_validation_errors(e)},
        ) from e
