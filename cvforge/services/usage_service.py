"""
Usage ledger: per-user, per-feature, per-month counters.

Periods are calendar months in UTC, computed at query time from the caller's
clock. A counter from an elapsed period is never read again, so rollover needs no
background job.

Counters are only ever changed with single conditional UPDATE statements so two
requests from the same user cannot both slip under a cap.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cvforge.core.clock import utc_now
from cvforge.core.plan_catalog import Feature, Limit, METERED_FEATURES
from cvforge.db.models.usage import UsageCounter

logger = logging.getLogger(__name__)


def current_period(now: datetime) -> Tuple[datetime, datetime]:
    """
    Return the (start, end) of the calendar month containing ``now``.

    Both bounds are naive UTC; start is inclusive, end is the first instant of the
    next month and exclusive.
    """
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)

    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1)
    else:
        end = datetime(now.year, now.month + 1, 1)
    return start, end


def _metered(feature) -> Feature:
    feature = Feature(feature)
    if feature not in METERED_FEATURES:
        raise ValueError(f"{feature.value} is not a metered feature")
    return feature


def _counter_query(db: Session, user_id: str, feature: Feature, period_start: datetime):
    return db.query(UsageCounter).filter(
        UsageCounter.user_id == user_id,
        UsageCounter.feature == feature.value,
        UsageCounter.period_start == period_start,
    )


def _ensure_counter(db: Session, user_id: str, feature: Feature, now: datetime) -> None:
    """Create the current-period row at zero if it does not exist yet."""
    period_start, period_end = current_period(now)
    if _counter_query(db, user_id, feature, period_start).first() is not None:
        return

    db.add(UsageCounter(
        user_id=user_id,
        feature=feature.value,
        period_start=period_start,
        period_end=period_end,
        count=0,
    ))
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same (user, feature, period) row
        db.rollback()


def get_usage_count(db: Session, user_id: str, feature, now: Optional[datetime] = None) -> int:
    """Current-period count for ``feature``; zero when no counter exists. Never writes."""
    feature = _metered(feature)
    period_start, _ = current_period(now or utc_now())
    counter = _counter_query(db, user_id, feature, period_start).first()
    return counter.count if counter else 0


def get_usage_for_period(db: Session, user_id: str, now: Optional[datetime] = None) -> Dict[Feature, int]:
    """Current-period counts for every metered feature."""
    period_start, _ = current_period(now or utc_now())
    rows = db.query(UsageCounter).filter(
        UsageCounter.user_id == user_id,
        UsageCounter.period_start == period_start,
    ).all()

    usage = {feature: 0 for feature in METERED_FEATURES}
    for row in rows:
        usage[Feature(row.feature)] = row.count
    return usage


def increment_usage(db: Session, user_id: str, feature, now: Optional[datetime] = None) -> None:
    """
    Record one use of ``feature`` in the current period.

    Call only after the gated action succeeded.
    """
    feature = _metered(feature)
    now = now or utc_now()
    _ensure_counter(db, user_id, feature, now)

    period_start, _ = current_period(now)
    _counter_query(db, user_id, feature, period_start).update(
        {UsageCounter.count: UsageCounter.count + 1},
        synchronize_session=False,
    )
    db.commit()

    logger.info(f"Usage recorded: user_id={user_id}, feature={feature.value}, period={period_start:%Y-%m}")


def try_consume(db: Session, user_id: str, feature, limit: Limit, now: Optional[datetime] = None) -> bool:
    """
    Atomically take one unit of ``feature`` if the count is still below ``limit``.

    Returns False, without writing, when the cap is already reached. Unlimited
    limits always succeed.
    """
    feature = _metered(feature)
    now = now or utc_now()
    _ensure_counter(db, user_id, feature, now)

    period_start, _ = current_period(now)
    query = _counter_query(db, user_id, feature, period_start)
    if not limit.is_unlimited:
        query = query.filter(UsageCounter.count < limit.cap)

    updated = query.update(
        {UsageCounter.count: UsageCounter.count + 1},
        synchronize_session=False,
    )
    db.commit()

    if updated:
        logger.info(
            f"Usage reserved: user_id={user_id}, feature={feature.value}, "
            f"limit={limit}, period={period_start:%Y-%m}"
        )
    return bool(updated)


def release(db: Session, user_id: str, feature, now: Optional[datetime] = None) -> None:
    """Give back a unit taken by ``try_consume`` after the gated action failed."""
    feature = _metered(feature)
    period_start, _ = current_period(now or utc_now())
    _counter_query(db, user_id, feature, period_start).filter(UsageCounter.count > 0).update(
        {UsageCounter.count: UsageCounter.count - 1},
        synchronize_session=False,
    )
    db.commit()

    logger.info(f"Usage released: user_id={user_id}, feature={feature.value}, period={period_start:%Y-%m}")


def reset_usage_for_user(db: Session, user_id: str) -> int:
    """
    Zero every counter the user has. Idempotent.

    Returns:
        Number of counter rows touched
    """
    updated = db.query(UsageCounter).filter(
        UsageCounter.user_id == user_id,
    ).update({UsageCounter.count: 0}, synchronize_session=False)
    db.commit()

    logger.info(f"Usage reset: user_id={user_id}, counters={updated}")
    return updated
