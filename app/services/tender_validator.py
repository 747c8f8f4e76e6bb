from datetime import datetime
from typing import Dict, Optional

from app.core.clock import ensure_aware, utcnow
from app.schemas.tenders import BidCreate

CONTRACT_STANDARDS = ("NS8405", "NS8406", "NS8407")


def validate_tender(
        project_id: Optional[str],
        title: Optional[str],
        contract_standard: Optional[str],
        deadline: Optional[datetime],
        publish_date: Optional[datetime] = None,
        question_deadline: Optional[datetime] = None,
        now: Optional[datetime] = None,
) -> Dict[str, str]:
    """Проверка полей перед созданием или публикацией. Возвращает ошибки по каждому полю."""
    now = ensure_aware(now) or utcnow()
    deadline = ensure_aware(deadline)
    publish_date = ensure_aware(publish_date)
    question_deadline = ensure_aware(question_deadline)
    errors = {}

    if not project_id:
        errors["project_id"] = "Vennligst velg et prosjekt"
    if not (title or "").strip():
        errors["title"] = "Tittel er påkrevd"
    if not contract_standard:
        errors["contract_standard"] = "Kontraktstandard er påkrevd"
    elif contract_standard not in CONTRACT_STANDARDS:
        errors["contract_standard"] = "Ukjent kontraktstandard"

    if not deadline:
        errors["deadline"] = "Frist er påkrevd"
    elif deadline <= now:
        errors["deadline"] = "Frist må være i fremtiden"

    if publish_date and publish_date < now:
        errors["publish_date"] = "Publiseringsdato kan ikke være i fortiden"
    if publish_date and deadline and publish_date >= deadline:
        errors["publish_date"] = "Publiseringsdato må være før frist"

    if question_deadline and deadline and question_deadline >= deadline:
        errors["question_deadline"] = "Spørsmålfrist må være før tilbudsfrist"
    if question_deadline and publish_date and question_deadline < publish_date:
        errors["question_deadline"] = "Spørsmålfrist kan ikke være før publiseringsdato"

    return errors


def validate_tender_dates(
        deadline: Optional[datetime],
        publish_date: Optional[datetime],
        question_deadline: Optional[datetime],
) -> Dict[str, str]:
    """Date ordering only, for edits of an already published tender."""
    deadline = ensure_aware(deadline)
    publish_date = ensure_aware(publish_date)
    question_deadline = ensure_aware(question_deadline)
    errors = {}
    if publish_date and deadline and publish_date >= deadline:
        errors["publish_date"] = "Publiseringsdato må være før frist"
    if question_deadline and deadline and question_deadline >= deadline:
        errors["question_deadline"] = "Spørsmålfrist må være før tilbudsfrist"
    if question_deadline and publish_date and question_deadline < publish_date:
        errors["question_deadline"] = "Spørsmålfrist kan ikke være før publiseringsdato"
    return errors


def validate_bid(bid: BidCreate) -> Dict[str, str]:
    errors = {}
    if bid.price is None or bid.price <= 0:
        errors["price"] = "Pris er påkrevd og må være større enn 0"
    if bid.price_structure == "timepris":
        if bid.hourly_rate is None or bid.hourly_rate <= 0:
            errors["hourly_rate"] = "Timepris er påkrevd når prisstruktur er timepris"
        if bid.estimated_hours is None or bid.estimated_hours <= 0:
            errors["estimated_hours"] = "Estimert antall timer er påkrevd"
    return errors


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()
