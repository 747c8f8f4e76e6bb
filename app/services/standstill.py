"""Standstill period (karensperiode) between award and contract.

No contract may be generated or signed while ``now < standstill_end_date``.
"""
import math
from datetime import datetime, timedelta
from typing import Optional

from app.core.clock import ensure_aware, utcnow
from app.core.config import settings
from app.schemas.tenders import ContractGate, StandstillStatus


def calculate_standstill_end_date(award_date: datetime, days: Optional[int] = None) -> datetime:
    if days is None:
        days = settings.STANDSTILL_PERIOD_DAYS
    return ensure_aware(award_date) + timedelta(days=days)


def is_standstill_period_ended(standstill_end_date: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if standstill_end_date is None:
        return True
    now = ensure_aware(now) or utcnow()
    return now >= ensure_aware(standstill_end_date)


def get_remaining_standstill_days(standstill_end_date: Optional[datetime],
                                  now: Optional[datetime] = None) -> Optional[int]:
    if standstill_end_date is None:
        return None
    now = ensure_aware(now) or utcnow()
    remaining = ensure_aware(standstill_end_date) - now
    if remaining.total_seconds() <= 0:
        return 0
    return math.ceil(remaining.total_seconds() / 86400)


def get_standstill_status(tender, now: Optional[datetime] = None) -> StandstillStatus:
    return StandstillStatus(
        tender_id=tender.id,
        standstill_start_date=tender.standstill_start_date,
        standstill_end_date=tender.standstill_end_date,
        ended=is_standstill_period_ended(tender.standstill_end_date, now),
        remaining_days=get_remaining_standstill_days(tender.standstill_end_date, now),
    )


def check_contract_allowed(tender, now: Optional[datetime] = None) -> ContractGate:
    """Gate consulted by contract generation and signing."""
    if tender.status != "awarded" or not tender.awarded_bid_id:
        return ContractGate(allowed=False, error="Anskaffelsen er ikke tildelt")
    if not is_standstill_period_ended(tender.standstill_end_date, now):
        end_date = ensure_aware(tender.standstill_end_date).strftime("%d.%m.%Y")
        return ContractGate(
            allowed=False,
            error=(
                "Kontrakt kan ikke genereres før ventetiden (standstill periode) er utløpt. "
                f"Ventetiden utløper {end_date}."
            ),
        )
    return ContractGate(allowed=True)
