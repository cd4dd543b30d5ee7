"""
Browse Log Service

Deduplicating browse ledger: records view signals from authenticated and
anonymous viewers, reads them back under per-role visibility, and counts
views per target.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import and_, false, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from eventhub.config import Settings
from eventhub.exceptions import (
    ClockSkewTooLargeError,
    InvalidCommandError,
    MissingTargetError,
    UnsupportedOperationError,
)
from eventhub.models.browse_log import BrowseLog
from eventhub.schemas.browse_log import (
    COUNT_CODE,
    READ_CODE,
    REPORT_CODE,
    BrowseCount,
    BrowseQuery,
    BrowseReport,
)
from eventhub.schemas.command import CommandResult
from eventhub.utils.metrics import BROWSE_REPORTS_TOTAL
from eventhub.utils.timeutils import isoformat_utc, to_naive_utc, utcnow, window_bucket

logger = logging.getLogger(__name__)

MASKED_IP = "******"


@dataclass(frozen=True)
class LedgerConfig:
    admin_identity: str | None = None
    dedup_window: timedelta = timedelta(hours=24)
    max_clock_skew: timedelta = timedelta(minutes=5)
    default_page_size: int = 20
    max_page_size: int = 100

    @classmethod
    def from_settings(cls, settings: Settings) -> "LedgerConfig":
        return cls(
            admin_identity=settings.admin_identity or None,
            dedup_window=settings.dedup_window,
            max_clock_skew=settings.max_clock_skew,
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
        )


def dedup_key(identity: str | None, anonymous_id: str | None) -> str:
    if identity:
        return f"user:{identity}"
    return f"anon:{anonymous_id}"


class BrowseLogService:
    """Report, read and count browse records."""

    def __init__(self, config: LedgerConfig, clock: Callable[[], datetime] = utcnow):
        self.config = config
        self._clock = clock

    def is_admin(self, identity: str | None) -> bool:
        return bool(self.config.admin_identity) and identity == self.config.admin_identity

    # ============== Report ==============

    async def report(self, db: AsyncSession, request: BrowseReport) -> CommandResult:
        """
        Record a view signal unless one exists for the same target and viewer
        inside the dedup window.

        A duplicate is not an error: the existing record is referenced and
        nothing is written. The ``status`` field tells the two outcomes apart.
        """
        if request.code != REPORT_CODE:
            raise UnsupportedOperationError(request.code, REPORT_CODE)

        now = self._clock()
        effective = to_naive_utc(request.created_at) if request.created_at else now
        skew = abs((now - effective).total_seconds())
        if skew > self.config.max_clock_skew.total_seconds():
            raise ClockSkewTooLargeError(skew, self.config.max_clock_skew.total_seconds())

        if not request.target_id:
            raise MissingTargetError()

        if not request.anonymous_id:
            raise InvalidCommandError("anonymousId must not be empty", details={"field": "anonymousId"})

        existing = await self._find_recent(db, request, now)
        if existing is not None:
            return self._duplicate_result(existing)

        record = BrowseLog(
            identity=request.identity,
            anonymous_id=request.anonymous_id,
            target_id=request.target_id,
            target_type=request.target_type,
            ip_address=request.ip_address,
            dedup_key=dedup_key(request.identity, request.anonymous_id),
            dedup_bucket=window_bucket(now, self.config.dedup_window),
            created_at=now,
            updated_at=now,
        )
        db.add(record)
        try:
            await db.commit()
        except IntegrityError:
            # A concurrent report for the same key won the insert.
            await db.rollback()
            existing = await self._find_recent(db, request, now)
            if existing is None:
                raise
            logger.info(f"Concurrent browse report collapsed into record {existing.id}")
            return self._duplicate_result(existing)

        await db.refresh(record)
        BROWSE_REPORTS_TOTAL.labels(outcome="recorded").inc()
        logger.debug(f"Recorded browse {record.id} for target {record.target_id}")

        return CommandResult(
            code=200,
            message="Browse recorded",
            data={
                "status": "recorded",
                "browseId": record.id,
                "browseTime": isoformat_utc(record.created_at),
            },
        )

    def _duplicate_result(self, existing: BrowseLog) -> CommandResult:
        BROWSE_REPORTS_TOTAL.labels(outcome="duplicate").inc()
        hours = self.config.dedup_window.total_seconds() / 3600
        return CommandResult(
            code=200,
            message=f"Browse already recorded within the last {hours:g} hours",
            data={
                "status": "duplicate",
                "browseId": existing.id,
                "lastBrowseTime": isoformat_utc(existing.created_at),
            },
        )

    async def _find_recent(self, db: AsyncSession, request: BrowseReport, now: datetime) -> BrowseLog | None:
        conditions = [
            BrowseLog.target_id == request.target_id,
            BrowseLog.created_at >= now - self.config.dedup_window,
        ]
        if request.identity:
            conditions.append(BrowseLog.identity == request.identity)
        else:
            conditions.append(BrowseLog.anonymous_id == request.anonymous_id)
            conditions.append(BrowseLog.identity.is_(None))

        result = await db.execute(
            select(BrowseLog).where(and_(*conditions)).order_by(BrowseLog.created_at.desc()).limit(1)
        )
        return result.scalars().first()

    # ============== Read ==============

    async def read(self, db: AsyncSession, request: BrowseQuery) -> CommandResult:
        """
        Page through browse records visible to the caller, newest first.

        Non-admin callers only ever see their own records plus the anonymous
        records of the anonymousId they supply; owner filters are ignored.
        """
        if request.code != READ_CODE:
            raise UnsupportedOperationError(request.code, READ_CODE)

        is_admin = self.is_admin(request.identity)
        conditions = self._visibility_conditions(request, is_admin) + self._common_filters(request)

        page_num = max(request.page_num or 1, 1)
        page_size = min(max(request.page_size or self.config.default_page_size, 1), self.config.max_page_size)

        total_result = await db.execute(select(func.count(BrowseLog.id)).where(and_(*conditions)))
        total = total_result.scalar() or 0

        result = await db.execute(
            select(BrowseLog)
            .where(and_(*conditions))
            .order_by(BrowseLog.created_at.desc(), BrowseLog.id.desc())
            .offset((page_num - 1) * page_size)
            .limit(page_size)
        )
        records = result.scalars().all()

        return CommandResult(
            code=200,
            message="Browse logs retrieved",
            data={
                "list": [self._format_record(record, is_admin) for record in records],
                "pageNum": page_num,
                "pageSize": page_size,
                "total": total,
            },
        )

    def _visibility_conditions(self, request: BrowseQuery, is_admin: bool) -> list:
        if is_admin:
            conditions = []
            if request.user_filter:
                conditions.append(BrowseLog.identity == request.user_filter)
            if request.anonymous_id:
                conditions.append(BrowseLog.anonymous_id == request.anonymous_id)
            return conditions

        owned = []
        if request.identity:
            owned.append(BrowseLog.identity == request.identity)
        if request.anonymous_id:
            owned.append(and_(BrowseLog.anonymous_id == request.anonymous_id, BrowseLog.identity.is_(None)))
        if not owned:
            return [false()]
        return [or_(*owned)]

    @staticmethod
    def _common_filters(request: BrowseQuery) -> list:
        conditions = []
        if request.target_type:
            conditions.append(BrowseLog.target_type == request.target_type)
        if request.target_id:
            conditions.append(BrowseLog.target_id == request.target_id)
        if request.start_time and request.end_time:
            conditions.append(BrowseLog.created_at >= to_naive_utc(request.start_time))
            conditions.append(BrowseLog.created_at <= to_naive_utc(request.end_time))
        return conditions

    @staticmethod
    def _format_record(record: BrowseLog, is_admin: bool) -> dict[str, Any]:
        return {
            "id": record.id,
            "user": record.identity,
            "anonymousId": record.anonymous_id,
            "targetId": record.target_id,
            "targetType": record.target_type,
            "createdAt": isoformat_utc(record.created_at),
            "updatedAt": isoformat_utc(record.updated_at),
            "ipAddress": record.ip_address if is_admin else MASKED_IP,
        }

    # ============== Count ==============

    async def count(self, db: AsyncSession, request: BrowseCount) -> CommandResult:
        """
        Count all-time views for one target, or for a batch of targets.

        Batched counts come back in request order and include targets with no
        views as zero.
        """
        if request.code != COUNT_CODE:
            raise UnsupportedOperationError(request.code, COUNT_CODE)

        if isinstance(request.target_id, list):
            target_ids = list(dict.fromkeys(t for t in request.target_id if t))
            if not target_ids:
                raise MissingTargetError()

            result = await db.execute(
                select(BrowseLog.target_id, func.count(BrowseLog.id))
                .where(BrowseLog.target_id.in_(target_ids))
                .group_by(BrowseLog.target_id)
            )
            found: dict[str, int] = dict(result.all())
            counts = [{"targetId": target_id, "count": found.get(target_id, 0)} for target_id in target_ids]
            return CommandResult(code=200, message="Count succeeded", data={"counts": counts})

        if not request.target_id:
            raise MissingTargetError()

        result = await db.execute(select(func.count(BrowseLog.id)).where(BrowseLog.target_id == request.target_id))
        return CommandResult(code=200, message="Count succeeded", data={"counts": result.scalar() or 0})
