"""
Command Router

Maps ``(ops, code)`` to a handler and turns every outcome, including failures,
into a ``CommandResult`` for the caller. Codes live in disjoint namespaces:
1xx users, 2xx generic events, 7xx the browse ledger.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.database import get_db_context
from eventhub.exceptions import EventHubError, InvalidCommandError, InvalidSignatureError, StorageError
from eventhub.schemas.browse_log import COUNT_CODE, READ_CODE, REPORT_CODE, parse_browse_request
from eventhub.schemas.command import Command, CommandResult, Ops, decode_frame, format_validation_errors
from eventhub.schemas.event import EventResponse, EventUpdate
from eventhub.schemas.user import UserCreate, UserResponse, UserUpdate
from eventhub.services import event_service, user_service
from eventhub.services.browse_log_service import BrowseLogService, LedgerConfig
from eventhub.services.signature import AcceptAllVerifier, SignatureVerifier, build_verifier
from eventhub.utils.metrics import track_command
from eventhub.utils.structured_logging import new_command_id

logger = logging.getLogger(__name__)
command_logger = logging.getLogger("eventhub.commands")

Handler = Callable[[AsyncSession, Command], Awaitable[CommandResult]]
SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

NAMESPACES = {
    "user": range(100, 200),
    "event": range(200, 300),
    "browse": range(700, 800),
}


def namespace_of(code: int) -> str | None:
    for name, codes in NAMESPACES.items():
        if code in codes:
            return name
    return None


def _validate(model: type[BaseModel], payload: dict[str, Any]) -> Any:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidCommandError("Invalid command data", details={"errors": format_validation_errors(e)}) from e


def _dump(schema: type[BaseModel], obj: Any) -> dict[str, Any]:
    return schema.model_validate(obj).model_dump(mode="json")


class CommandRouter:
    """Stateless dispatcher from decoded commands to domain handlers."""

    def __init__(
        self,
        ledger: BrowseLogService,
        verifier: SignatureVerifier | None = None,
        anonymous_identity: str | None = None,
        session_factory: SessionFactory = get_db_context,
    ):
        self.ledger = ledger
        self.verifier = verifier or AcceptAllVerifier()
        self.anonymous_identity = anonymous_identity
        self._session_factory = session_factory
        self._handlers: dict[tuple[Ops, int], Handler] = {
            (Ops.CREATE, 100): self._create_user,
            (Ops.UPDATE, 101): self._update_user,
            (Ops.DELETE, 102): self._delete_user,
            (Ops.READ, 103): self._get_user,
            (Ops.CREATE, 200): self._create_event,
            (Ops.UPDATE, 201): self._update_event,
            (Ops.DELETE, 202): self._delete_event,
            (Ops.READ, 203): self._read_events,
            (Ops.CREATE, REPORT_CODE): self._report_browse,
            (Ops.READ, READ_CODE): self._read_browse,
            (Ops.READ, COUNT_CODE): self._count_browse,
        }

    def register(self, ops: Ops, code: int, handler: Handler | None = None):
        """
        Register ``handler`` for ``(ops, code)``. Without a handler, returns a
        decorator::

            @command_router.register(Ops.READ, 150)
            async def read_something(db, command): ...
        """
        if namespace_of(code) is None:
            raise ValueError(f"Code {code} is outside every namespace")

        def decorator(func: Handler) -> Handler:
            self._handlers[(ops, code)] = func
            return func

        if handler is None:
            return decorator
        return decorator(handler)

    def resolve(self, command: Command) -> Handler:
        if namespace_of(command.code) is None:
            raise InvalidCommandError(f"Unknown code namespace for code {command.code}")
        handler = self._handlers.get((command.ops, command.code))
        if handler is None:
            raise InvalidCommandError(f"No handler for ops={command.ops.value} code={command.code}")
        return handler

    async def handle_frame(self, raw: str | bytes) -> tuple[Command | None, CommandResult]:
        """Decode one frame and dispatch it; decoding failures become results too."""
        new_command_id()
        try:
            command = decode_frame(raw)
        except InvalidCommandError as e:
            logger.warning(f"Rejected frame: {e.message}")
            return None, CommandResult.from_error(e)
        return command, await self.dispatch(command)

    async def dispatch(self, command: Command) -> CommandResult:
        start_time = time.perf_counter()
        routed = False
        try:
            handler = self.resolve(command)
            routed = True
            if not self.verifier.verify(command):
                raise InvalidSignatureError()
            async with self._session_factory() as db:
                result = await handler(db, command)
        except EventHubError as e:
            result = CommandResult.from_error(e)
        except SQLAlchemyError as e:
            logger.error(f"Storage failure handling ops={command.ops.value} code={command.code}: {e}")
            result = CommandResult.from_error(StorageError(operation=f"{command.ops.value}{command.code}"))
        except Exception:
            logger.exception(f"Unhandled error handling ops={command.ops.value} code={command.code}")
            result = CommandResult(code=500, message="Internal server error")

        duration = time.perf_counter() - start_time
        self._log_command(command, result, duration)
        track_command(command.ops.value, command.code if routed else 0, result.code, duration)
        return result

    def _log_command(self, command: Command, result: CommandResult, duration: float) -> None:
        if result.code >= 500:
            log_level = logging.ERROR
        elif result.code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        extra = {
            "ops": command.ops.value,
            "code": command.code,
            "user": command.user,
            "status_code": result.code,
            "duration_ms": round(duration * 1000, 2),
        }
        command_logger.log(
            log_level,
            f"ops={command.ops.value} code={command.code} user={command.user} - {result.code} {result.message}",
            extra=extra,
        )

    # ============== User Handlers (1xx) ==============

    async def _create_user(self, db: AsyncSession, command: Command) -> CommandResult:
        data = _validate(UserCreate, {"pubkey": command.user, "email": command.data.get("email"), "sig": command.sig})
        user = await user_service.create_user(db, data)
        return CommandResult(code=200, message="User created", data=_dump(UserResponse, user))

    async def _update_user(self, db: AsyncSession, command: Command) -> CommandResult:
        data = _validate(UserUpdate, command.data)
        user = await user_service.update_user(db, command.user, data)
        return CommandResult(code=200, message="User updated", data=_dump(UserResponse, user))

    async def _delete_user(self, db: AsyncSession, command: Command) -> CommandResult:
        await user_service.delete_user(db, command.user)
        return CommandResult(code=200, message="User deleted")

    async def _get_user(self, db: AsyncSession, command: Command) -> CommandResult:
        user = await user_service.get_user_by_pubkey(db, command.user)
        return CommandResult(code=200, message="User retrieved", data=_dump(UserResponse, user))

    # ============== Event Handlers (2xx) ==============

    async def _create_event(self, db: AsyncSession, command: Command) -> CommandResult:
        event = await event_service.create_event(db, command)
        return CommandResult(code=200, message="Event created", data=_dump(EventResponse, event))

    async def _update_event(self, db: AsyncSession, command: Command) -> CommandResult:
        data = _validate(EventUpdate, command.data)
        event = await event_service.update_event(db, command.user, data)
        return CommandResult(code=200, message="Event updated", data=_dump(EventResponse, event))

    async def _delete_event(self, db: AsyncSession, command: Command) -> CommandResult:
        event_id = command.data.get("eventId")
        if not isinstance(event_id, int) or isinstance(event_id, bool):
            raise InvalidCommandError("eventId must be an integer", details={"field": "eventId"})
        await event_service.delete_event(db, command.user, event_id)
        return CommandResult(code=200, message="Event deleted", data={"eventId": event_id})

    async def _read_events(self, db: AsyncSession, command: Command) -> CommandResult:
        events = await event_service.read_events(db, command.user)
        return CommandResult(
            code=200,
            message="Events retrieved",
            data=[_dump(EventResponse, event) for event in events],
        )

    # ============== Browse Ledger Handlers (7xx) ==============

    async def _report_browse(self, db: AsyncSession, command: Command) -> CommandResult:
        return await self.ledger.report(db, parse_browse_request(command, self.anonymous_identity))

    async def _read_browse(self, db: AsyncSession, command: Command) -> CommandResult:
        return await self.ledger.read(db, parse_browse_request(command, self.anonymous_identity))

    async def _count_browse(self, db: AsyncSession, command: Command) -> CommandResult:
        return await self.ledger.count(db, parse_browse_request(command, self.anonymous_identity))


def build_command_router(settings, session_factory: SessionFactory = get_db_context) -> CommandRouter:
    """Wire a router from application settings."""
    return CommandRouter(
        ledger=BrowseLogService(LedgerConfig.from_settings(settings)),
        verifier=build_verifier(settings.signing_secret),
        anonymous_identity=settings.anonymous_identity,
        session_factory=session_factory,
    )
