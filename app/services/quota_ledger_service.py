"""
Quota Ledger Service - Monthly search allowance per user
Lazy calendar-month reset and atomic consumption, both as single conditional UPDATEs
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, case, or_

from app.database.unified_models import User
from app.models.search import QuotaStatus
from app.models.subscription import SubscriptionPlan

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (sqlite hands them back without tzinfo)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def period_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """[start, end) of the calendar month (UTC) containing now"""
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def is_new_period(anchor: datetime, now: datetime) -> bool:
    anchor = as_utc(anchor)
    return (anchor.year, anchor.month) != (now.year, now.month)


class QuotaLedgerService:
    """
    Tracks searches_used against search_quota per calendar month

    The counter only ever moves through single UPDATE statements so concurrent
    requests never lose an increment.
    """

    # =========================================================================
    # PERIOD ROLLOVER
    # =========================================================================

    async def _reset_if_new_period(self, db: AsyncSession, user_id: UUID, now: datetime) -> Optional[bool]:
        """
        Zero the counter when the stored anchor is in another month

        Returns None for unknown users, True when a reset applied, False otherwise.
        """
        result = await db.execute(
            select(User.quota_reset_date).where(User.id == user_id)
        )
        anchor = result.scalar_one_or_none()
        if anchor is None:
            return None

        if not is_new_period(anchor, now):
            return False

        # Compare-and-swap on the anchor we read; a concurrent reset makes this a no-op
        await db.execute(
            update(User)
            .where(User.id == user_id, User.quota_reset_date == anchor)
            .values(searches_used=0, quota_reset_date=now)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info(f"Quota period rolled over for user {user_id}")
        return True

    # =========================================================================
    # LEDGER OPERATIONS
    # =========================================================================

    async def check_quota(self, db: AsyncSession, user_id: UUID) -> bool:
        """True when the user may start another search; unknown users are refused"""
        now = datetime.now(timezone.utc)
        reset = await self._reset_if_new_period(db, user_id, now)
        if reset is None:
            logger.warning(f"Quota check for unknown user {user_id}")
            return False
        if reset:
            # a fresh period always has quota
            return True

        result = await db.execute(
            select(User.searches_used, User.search_quota).where(User.id == user_id)
        )
        row = result.first()
        if row is None:
            return False

        return row.searches_used < row.search_quota

    async def consume_quota(self, db: AsyncSession, user_id: UUID) -> None:
        """
        Count one completed search

        Increment-or-reset in one statement: an anchor outside the current month
        restarts the counter at 1 and moves the anchor to now.
        """
        now = datetime.now(timezone.utc)
        period_start, period_end = period_bounds(now)
        stale = or_(User.quota_reset_date < period_start, User.quota_reset_date >= period_end)

        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                searches_used=case((stale, 1), else_=User.searches_used + 1),
                quota_reset_date=case((stale, now), else_=User.quota_reset_date),
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        if result.rowcount == 0:
            logger.warning(f"Quota consumption skipped: user {user_id} not found")
        else:
            logger.info(f"Consumed 1 search for user {user_id}")

    async def get_quota_status(self, db: AsyncSession, user_id: UUID) -> Optional[QuotaStatus]:
        now = datetime.now(timezone.utc)
        if await self._reset_if_new_period(db, user_id, now) is None:
            return None

        result = await db.execute(
            select(
                User.search_quota,
                User.searches_used,
                User.quota_reset_date,
                User.subscription_plan,
            ).where(User.id == user_id)
        )
        row = result.first()
        if row is None:
            return None

        return QuotaStatus(
            quota=row.search_quota,
            used=row.searches_used,
            remaining=max(0, row.search_quota - row.searches_used),
            reset_date=as_utc(row.quota_reset_date),
            plan=SubscriptionPlan(row.subscription_plan),
        )


quota_ledger_service = QuotaLedgerService()
