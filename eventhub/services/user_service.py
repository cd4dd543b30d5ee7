import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from eventhub.exceptions import DuplicateResourceError, UserNotFoundError
from eventhub.models.user import User
from eventhub.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


async def get_user_by_pubkey(db: AsyncSession, pubkey: str) -> User:
    result = await db.execute(select(User).where(User.pubkey == pubkey))
    user = result.scalars().first()
    if user is None:
        raise UserNotFoundError(pubkey)
    return user


async def create_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Creates a new user.

    Raises:
        DuplicateResourceError: If a user with the same pubkey exists.
    """
    result = await db.execute(select(User.id).where(User.pubkey == user_data.pubkey))
    if result.scalar() is not None:
        raise DuplicateResourceError("User", "pubkey", user_data.pubkey)

    new_user = User(pubkey=user_data.pubkey, email=user_data.email, sig=user_data.sig)
    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateResourceError("User", "pubkey", user_data.pubkey) from e

    await db.refresh(new_user)
    logger.info(f"User created successfully: {new_user.id}")
    return new_user


async def update_user(db: AsyncSession, pubkey: str, data: UserUpdate) -> User:
    user = await get_user_by_pubkey(db, pubkey)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    return user


async def delete_user(db: AsyncSession, pubkey: str) -> None:
    user = await get_user_by_pubkey(db, pubkey)
    await db.delete(user)
    await db.commit()
    logger.info(f"User deleted: {pubkey}")
