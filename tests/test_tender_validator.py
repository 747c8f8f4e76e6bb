from datetime import datetime, timedelta, timezone

from app.schemas.tenders import BidCreate
from app.services.tender_validator import validate_bid, validate_tender, validate_tender_dates

T = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


def valid_fields(**overrides):
    values = dict(
        project_id="proj-1",
        title="Nytt tak på idrettshall",
        contract_standard="NS8406",
        deadline=T + timedelta(days=30),
        publish_date=T + timedelta(days=1),
        question_deadline=T + timedelta(days=20),
        now=T,
    )
    values.update(overrides)
    return values


def test_valid_tender_has_no_errors():
    assert validate_tender(**valid_fields()) == {}


def test_question_deadline_after_deadline_is_rejected():
    errors = validate_tender(**valid_fields(question_deadline=T + timedelta(days=31)))
    assert errors == {"question_deadline": "Spørsmålfrist må være før tilbudsfrist"}


def test_question_deadline_before_publish_date_is_rejected():
    errors = validate_tender(**valid_fields(publish_date=T + timedelta(days=5), question_deadline=T + timedelta(days=2)))
    assert errors["question_deadline"] == "Spørsmålfrist kan ikke være før publiseringsdato"


def test_missing_fields_are_reported_per_field():
    errors = validate_tender(project_id=None, title="   ", contract_standard=None, deadline=None, now=T)
    assert errors == {
        "project_id": "Vennligst velg et prosjekt",
        "title": "Tittel er påkrevd",
        "contract_standard": "Kontraktstandard er påkrevd",
        "deadline": "Frist er påkrevd",
    }


def test_deadline_must_be_strictly_in_the_future():
    errors = validate_tender(**valid_fields(deadline=T, publish_date=None, question_deadline=None))
    assert errors == {"deadline": "Frist må være i fremtiden"}


def test_publish_date_rules():
    past = validate_tender(**valid_fields(publish_date=T - timedelta(hours=1), question_deadline=None))
    assert past["publish_date"] == "Publiseringsdato kan ikke være i fortiden"

    late = validate_tender(**valid_fields(publish_date=T + timedelta(days=30), question_deadline=None))
    assert late["publish_date"] == "Publiseringsdato må være før frist"


def test_unknown_contract_standard():
    errors = validate_tender(**valid_fields(contract_standard="NS3420"))
    assert errors == {"contract_standard": "Ukjent kontraktstandard"}


def test_date_order_check_for_edits():
    assert validate_tender_dates(T + timedelta(days=10), T + timedelta(days=1), T + timedelta(days=5)) == {}
    errors = validate_tender_dates(T + timedelta(days=10), T + timedelta(days=1), T + timedelta(days=10))
    assert errors == {"question_deadline": "Spørsmålfrist må være før tilbudsfrist"}


def test_bid_price_must_be_positive():
    assert validate_bid(BidCreate(price=0)) == {"price": "Pris er påkrevd og må være større enn 0"}
    assert validate_bid(BidCreate()) == {"price": "Pris er påkrevd og må være større enn 0"}
    assert validate_bid(BidCreate(price=450000)) == {}


def test_hourly_price_structure_requires_rate_and_hours():
    errors = validate_bid(BidCreate(price=100000, price_structure="timepris"))
    assert errors == {
        "hourly_rate": "Timepris er påkrevd når prisstruktur er timepris",
        "estimated_hours": "Estimert antall timer er påkrevd",
    }
    assert validate_bid(BidCreate(price=100000, price_structure="timepris", hourly_rate=950, estimated_hours=120)) == {}
