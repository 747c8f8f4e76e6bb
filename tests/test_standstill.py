from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.core.config import settings
from app.services.standstill import (
    calculate_standstill_end_date,
    check_contract_allowed,
    get_remaining_standstill_days,
    get_standstill_status,
    is_standstill_period_ended,
)

AWARD = datetime(2025, 3, 3, 14, 30, tzinfo=timezone.utc)


def awarded_tender(**overrides):
    values = dict(
        id="tender-1",
        status="awarded",
        awarded_bid_id="bid-1",
        standstill_start_date=AWARD,
        standstill_end_date=calculate_standstill_end_date(AWARD),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_end_date_is_start_plus_configured_days():
    end = calculate_standstill_end_date(AWARD)
    assert end - AWARD == timedelta(days=settings.STANDSTILL_PERIOD_DAYS)
    assert calculate_standstill_end_date(AWARD, days=3) == AWARD + timedelta(days=3)


def test_naive_award_date_is_treated_as_utc():
    end = calculate_standstill_end_date(AWARD.replace(tzinfo=None), days=10)
    assert end == AWARD + timedelta(days=10)


def test_period_ended_boundaries():
    end = calculate_standstill_end_date(AWARD)
    assert is_standstill_period_ended(end, now=end - timedelta(seconds=1)) is False
    assert is_standstill_period_ended(end, now=end) is True
    assert is_standstill_period_ended(end, now=end + timedelta(days=1)) is True


def test_no_end_date_counts_as_ended():
    assert is_standstill_period_ended(None) is True
    assert get_remaining_standstill_days(None) is None


@pytest.mark.parametrize(
    "elapsed, expected",
    [
        (timedelta(0), 10),
        (timedelta(hours=1), 10),
        (timedelta(days=9, hours=23), 1),
        (timedelta(days=10), 0),
        (timedelta(days=15), 0),
    ],
)
def test_remaining_days_rounds_up_and_clamps(elapsed, expected):
    end = calculate_standstill_end_date(AWARD, days=10)
    assert get_remaining_standstill_days(end, now=AWARD + elapsed) == expected


def test_contract_refused_during_standstill():
    tender = awarded_tender()
    gate = check_contract_allowed(tender, now=AWARD + timedelta(days=2))
    assert gate.allowed is False
    assert "ventetiden (standstill periode)" in gate.error
    assert tender.standstill_end_date.strftime("%d.%m.%Y") in gate.error


def test_contract_allowed_when_standstill_is_over():
    tender = awarded_tender()
    gate = check_contract_allowed(tender, now=tender.standstill_end_date)
    assert gate.allowed is True
    assert gate.error is None


def test_contract_refused_for_tender_that_is_not_awarded():
    gate = check_contract_allowed(awarded_tender(status="closed", awarded_bid_id=None), now=AWARD)
    assert gate.allowed is False
    assert gate.error == "Anskaffelsen er ikke tildelt"


def test_standstill_status_snapshot():
    tender = awarded_tender()
    status = get_standstill_status(tender, now=AWARD + timedelta(days=4))
    assert status.tender_id == "tender-1"
    assert status.ended is False
    assert status.remaining_days == 6
