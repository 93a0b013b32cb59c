"""
Tests for the monthly quota ledger
"""
import uuid
from datetime import datetime, timezone, timedelta

from sqlalchemy import select

from app.database.unified_models import User
from app.services.quota_ledger_service import quota_ledger_service, is_new_period, period_bounds

from conftest import create_user


def previous_month(now: datetime) -> datetime:
    start, _ = period_bounds(now)
    return start - timedelta(days=3)


async def load_counters(db, user_id):
    result = await db.execute(
        select(User.searches_used, User.quota_reset_date).where(User.id == user_id)
    )
    return result.first()


class TestPeriodHelpers:

    def test_same_month_is_not_new_period(self):
        now = datetime(2024, 5, 20, tzinfo=timezone.utc)
        assert not is_new_period(datetime(2024, 5, 1), now)

    def test_month_or_year_change_is_new_period(self):
        now = datetime(2024, 1, 2, tzinfo=timezone.utc)
        assert is_new_period(datetime(2023, 12, 31, tzinfo=timezone.utc), now)
        assert is_new_period(datetime(2023, 1, 15, tzinfo=timezone.utc), now)

    def test_period_bounds_wrap_december(self):
        start, end = period_bounds(datetime(2024, 12, 15, 8, 30, tzinfo=timezone.utc))
        assert start == datetime(2024, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2025, 1, 1, tzinfo=timezone.utc)


class TestCheckQuota:

    async def test_unknown_user_is_refused(self, db_session):
        assert await quota_ledger_service.check_quota(db_session, uuid.uuid4()) is False

    async def test_user_under_quota_may_search(self, db_session):
        user = await create_user(db_session, search_quota=10, searches_used=9)
        assert await quota_ledger_service.check_quota(db_session, user.id) is True

    async def test_user_at_quota_is_refused(self, db_session):
        user = await create_user(db_session, search_quota=10, searches_used=10)
        assert await quota_ledger_service.check_quota(db_session, user.id) is False

    async def test_month_rollover_resets_counter(self, db_session):
        now = datetime.now(timezone.utc)
        user = await create_user(db_session, search_quota=10, searches_used=10, quota_reset_date=previous_month(now))

        assert await quota_ledger_service.check_quota(db_session, user.id) is True

        row = await load_counters(db_session, user.id)
        assert row.searches_used == 0
        assert not is_new_period(row.quota_reset_date, datetime.now(timezone.utc))

    async def test_fresh_period_allows_search_even_with_zero_quota(self, db_session):
        now = datetime.now(timezone.utc)
        user = await create_user(db_session, search_quota=0, searches_used=0, quota_reset_date=previous_month(now))

        assert await quota_ledger_service.check_quota(db_session, user.id) is True

    async def test_zero_quota_within_period_is_refused(self, db_session):
        user = await create_user(db_session, search_quota=0, searches_used=0)
        assert await quota_ledger_service.check_quota(db_session, user.id) is False


class TestConsumeQuota:

    async def test_consume_increments_by_one(self, db_session):
        user = await create_user(db_session, searches_used=3)
        await quota_ledger_service.consume_quota(db_session, user.id)

        row = await load_counters(db_session, user.id)
        assert row.searches_used == 4

    async def test_consume_with_stale_anchor_restarts_at_one(self, db_session):
        now = datetime.now(timezone.utc)
        user = await create_user(db_session, searches_used=7, quota_reset_date=previous_month(now))

        await quota_ledger_service.consume_quota(db_session, user.id)

        row = await load_counters(db_session, user.id)
        assert row.searches_used == 1
        assert not is_new_period(row.quota_reset_date, datetime.now(timezone.utc))

    async def test_consume_for_unknown_user_is_a_no_op(self, db_session):
        await quota_ledger_service.consume_quota(db_session, uuid.uuid4())


class TestQuotaStatus:

    async def test_status_reports_remaining_with_floor(self, db_session):
        user = await create_user(db_session, search_quota=10, searches_used=12, subscription_plan="STARTER")
        status = await quota_ledger_service.get_quota_status(db_session, user.id)

        assert status.quota == 10
        assert status.used == 12
        assert status.remaining == 0
        assert status.plan.value == "STARTER"
        assert status.reset_date.tzinfo is not None

    async def test_status_for_unknown_user_is_none(self, db_session):
        assert await quota_ledger_service.get_quota_status(db_session, uuid.uuid4()) is None
