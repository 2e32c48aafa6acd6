from datetime import datetime, timedelta, timezone

import pytest

from cvforge.core.plan_catalog import Feature, Limit
from cvforge.db.models.usage import UsageCounter
from cvforge.services import usage_service


MARCH = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
APRIL = datetime(2026, 4, 2, 9, 0, tzinfo=timezone.utc)


def test_current_period_bounds():
    start, end = usage_service.current_period(MARCH)
    assert start == datetime(2026, 3, 1)
    assert end == datetime(2026, 4, 1)


def test_current_period_december_rolls_into_next_year():
    start, end = usage_service.current_period(datetime(2025, 12, 31, 23, 59, tzinfo=timezone.utc))
    assert start == datetime(2025, 12, 1)
    assert end == datetime(2026, 1, 1)


def test_current_period_converts_to_utc():
    # 00:30 on April 1st in UTC+2 is still March in UTC
    plus_two = timezone(timedelta(hours=2))
    start, _ = usage_service.current_period(datetime(2026, 4, 1, 0, 30, tzinfo=plus_two))
    assert start == datetime(2026, 3, 1)


def test_missing_counter_reads_as_zero(db, make_user):
    user = make_user()
    assert usage_service.get_usage_count(db, user.id, Feature.AI_RUNS, now=MARCH) == 0
    assert db.query(UsageCounter).count() == 0


def test_increment_adds_exactly_one(db, make_user):
    user = make_user()
    for expected in (1, 2, 3):
        usage_service.increment_usage(db, user.id, Feature.CV_GENERATIONS, now=MARCH)
        assert usage_service.get_usage_count(db, user.id, Feature.CV_GENERATIONS, now=MARCH) == expected


def test_increment_is_per_feature(db, make_user):
    user = make_user()
    usage_service.increment_usage(db, user.id, Feature.AI_RUNS, now=MARCH)

    usage = usage_service.get_usage_for_period(db, user.id, now=MARCH)
    assert usage[Feature.AI_RUNS] == 1
    assert usage[Feature.CV_GENERATIONS] == 0
    assert usage[Feature.COVER_LETTER_GENERATIONS] == 0


def test_new_month_starts_from_zero(db, make_user):
    user = make_user()
    usage_service.increment_usage(db, user.id, Feature.CV_GENERATIONS, now=MARCH)

    assert usage_service.get_usage_count(db, user.id, Feature.CV_GENERATIONS, now=APRIL) == 0
    # The March row is kept as history
    assert usage_service.get_usage_count(db, user.id, Feature.CV_GENERATIONS, now=MARCH) == 1


def test_try_consume_stops_at_cap(db, make_user):
    user = make_user()
    limit = Limit(2)

    assert usage_service.try_consume(db, user.id, Feature.AI_RUNS, limit, now=MARCH)
    assert usage_service.try_consume(db, user.id, Feature.AI_RUNS, limit, now=MARCH)
    assert not usage_service.try_consume(db, user.id, Feature.AI_RUNS, limit, now=MARCH)
    assert usage_service.get_usage_count(db, user.id, Feature.AI_RUNS, now=MARCH) == 2


def test_try_consume_with_zero_cap_never_succeeds(db, make_user):
    user = make_user()
    assert not usage_service.try_consume(db, user.id, Feature.COVER_LETTER_GENERATIONS, Limit(0), now=MARCH)
    assert usage_service.get_usage_count(db, user.id, Feature.COVER_LETTER_GENERATIONS, now=MARCH) == 0


def test_release_gives_back_a_unit(db, make_user):
    user = make_user()
    usage_service.try_consume(db, user.id, Feature.AI_RUNS, Limit(1), now=MARCH)
    usage_service.release(db, user.id, Feature.AI_RUNS, now=MARCH)

    assert usage_service.get_usage_count(db, user.id, Feature.AI_RUNS, now=MARCH) == 0


def test_release_never_goes_negative(db, make_user):
    user = make_user()
    usage_service.release(db, user.id, Feature.AI_RUNS, now=MARCH)
    usage_service.try_consume(db, user.id, Feature.AI_RUNS, Limit(1), now=MARCH)
    usage_service.release(db, user.id, Feature.AI_RUNS, now=MARCH)
    usage_service.release(db, user.id, Feature.AI_RUNS, now=MARCH)

    assert usage_service.get_usage_count(db, user.id, Feature.AI_RUNS, now=MARCH) == 0


def test_reset_zeroes_all_counters_and_is_idempotent(db, make_user):
    user = make_user()
    other = make_user()
    usage_service.increment_usage(db, user.id, Feature.AI_RUNS, now=MARCH)
    usage_service.increment_usage(db, user.id, Feature.CV_GENERATIONS, now=MARCH)
    usage_service.increment_usage(db, other.id, Feature.AI_RUNS, now=MARCH)

    assert usage_service.reset_usage_for_user(db, user.id) == 2
    assert usage_service.reset_usage_for_user(db, user.id) == 2

    assert usage_service.get_usage_for_period(db, user.id, now=MARCH) == {
        Feature.AI_RUNS: 0,
        Feature.CV_GENERATIONS: 0,
        Feature.COVER_LETTER_GENERATIONS: 0,
    }
    assert usage_service.get_usage_count(db, other.id, Feature.AI_RUNS, now=MARCH) == 1


def test_templates_are_not_metered(db, make_user):
    user = make_user()
    with pytest.raises(ValueError):
        usage_service.increment_usage(db, user.id, Feature.TEMPLATES, now=MARCH)
