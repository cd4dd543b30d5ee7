import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from eventhub.exceptions import EventNotFoundError
from eventhub.models.event import Event
from eventhub.schemas.command import Command
from eventhub.schemas.event import EventUpdate
from eventhub.utils.timeutils import to_naive_utc

logger = logging.getLogger(__name__)

DEFAULT_READ_LIMIT = 1000


async def create_event(db: AsyncSession, command: Command) -> Event:
    """Persist the envelope of a create-event command as-is."""
    event = Event(
        user=command.user,
        ops=command.ops.value,
        code=command.code,
        sig=command.sig,
        data=command.data,
        tags=command.tags,
        client_created_at=to_naive_utc(command.created_at) if command.created_at else None,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    logger.info(f"Event created successfully: {event.id}")
    return event


async def read_events(db: AsyncSession, user: str, limit: int = DEFAULT_READ_LIMIT) -> list[Event]:
    result = await db.execute(
        select(Event).where(Event.user == user).order_by(Event.created_at.desc(), Event.id.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def _get_owned_event(db: AsyncSession, user: str, event_id: int) -> Event:
    result = await db.execute(select(Event).where(Event.id == event_id, Event.user == user))
    event = result.scalars().first()
    if event is None:
        raise EventNotFoundError(event_id)
    return event


async def update_event(db: AsyncSession, user: str, data: EventUpdate) -> Event:
    """Replace the data and/or tags of an event owned by ``user``."""
    event = await _get_owned_event(db, user, data.event_id)

    for field, value in data.model_dump(exclude_unset=True, exclude={"event_id"}).items():
        setattr(event, field, value)

    await db.commit()
    await db.refresh(event)
    return event


async def delete_event(db: AsyncSession, user: str, event_id: int) -> None:
    event = await _get_owned_event(db, user, event_id)
    await db.delete(event)
    await db.commit()
    logger.info(f"Event deleted: {event_id}")
