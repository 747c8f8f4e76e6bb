from datetime import timedelta

import pytest
from conftest import NOW
from pydantic import ValidationError

from app.core.config import settings
from app.crud.tenders import count_bids
from app.schemas.common import Actor
from app.schemas.document import UploadedFile
from app.schemas.tenders import Bid, BidCreate
from app.services import bid_service, tender_service
from app.services.standstill import check_contract_allowed


async def test_submit_bid(db, supplier_a, create_open_tender, storage, sent_alerts):
    tender = await create_open_tender()
    sent_alerts.clear()

    result = await bid_service.submit_bid(
        db,
        tender.id,
        BidCreate(price=100000, notes="Inkl. rigg og drift"),
        supplier_a,
        files=[UploadedFile(name="Tilbud.pdf", content=b"%PDF-1.7", content_type="application/pdf")],
        now=NOW + timedelta(days=5),
    )

    assert result.success
    bid = result.bid
    assert bid.status == "submitted"
    assert bid.supplier_id == "sup-a"
    assert bid.company_name == "Entreprenør A AS"
    assert bid.submitted_at == NOW + timedelta(days=5)
    assert bid.documents[0]["storage_path"].startswith(f"tenders/{tender.id}/bids/{bid.id}/documents/")
    assert bid.documents[0]["storage_path"].endswith("_Tilbud.pdf")
    assert list(storage.files) == [bid.documents[0]["storage_path"]]
    assert len(sent_alerts) == 1


async def test_bid_after_deadline_creates_nothing(db, supplier_a, create_open_tender):
    tender = await create_open_tender()

    result = await bid_service.submit_bid(
        db, tender.id, BidCreate(price=100000), supplier_a, now=tender.deadline + timedelta(seconds=1)
    )

    assert result.success is False
    assert result.error == "Fristen for å levere tilbud har gått ut"
    assert await count_bids(db, tender.id) == 0


async def test_bid_at_exact_deadline_is_accepted(db, supplier_a, create_open_tender):
    tender = await create_open_tender()

    result = await bid_service.submit_bid(db, tender.id, BidCreate(price=100000), supplier_a, now=tender.deadline)

    assert result.success


async def test_bid_requires_open_tender(db, owner, supplier_a, create_open_tender):
    tender = await create_open_tender()
    await tender_service.close_tender(db, tender.id, owner, now=NOW)

    result = await bid_service.submit_bid(db, tender.id, BidCreate(price=100000), supplier_a, now=NOW)

    assert result.error_code == "conflict"
    assert await count_bids(db, tender.id) == 0


async def test_uninvited_supplier_is_refused(db, create_open_tender):
    tender = await create_open_tender()
    stranger = Actor(id="sup-x", email="post@ukjent.no", company_name="Ukjent AS")

    result = await bid_service.submit_bid(db, tender.id, BidCreate(price=100000), stranger, now=NOW)

    assert result.error == "Du er ikke invitert til denne anskaffelsen"


async def test_invitation_matched_by_email_ignoring_case(db, create_open_tender):
    tender = await create_open_tender()
    colleague = Actor(id="user-77", email="  PER@Entreprenor-B.no ", company_name="Entreprenør B AS")

    result = await bid_service.submit_bid(db, tender.id, BidCreate(price=100000), colleague, now=NOW)

    assert result.success


async def test_timepris_requires_rate_and_hours(db, supplier_a, create_open_tender):
    tender = await create_open_tender()

    result = await bid_service.submit_bid(
        db, tender.id, BidCreate(price=100000, price_structure="timepris", hourly_rate=850), supplier_a, now=NOW
    )

    assert result.error_code == "validation"
    assert result.errors == {"estimated_hours": "Estimert antall timer er påkrevd"}


async def test_failed_bid_upload_leaves_no_bid(db, supplier_a, create_open_tender, storage):
    tender = await create_open_tender()
    storage.fail_upload = True

    result = await bid_service.submit_bid(
        db, tender.id, BidCreate(price=100000), supplier_a,
        files=[UploadedFile(name="Tilbud.pdf", content=b"%PDF")], now=NOW,
    )

    assert result.error_code == "upstream"
    assert await count_bids(db, tender.id) == 0


async def submit_two_bids(db, tender, supplier_a, supplier_b):
    high = await bid_service.submit_bid(db, tender.id, BidCreate(price=100000), supplier_a, now=NOW)
    low = await bid_service.submit_bid(db, tender.id, BidCreate(price=90000), supplier_b, now=NOW)
    return high.bid, low.bid


async def test_award_lowest_bid(db, owner, supplier_a, supplier_b, create_open_tender, sent_alerts):
    tender = await create_open_tender()
    high, low = await submit_two_bids(db, tender, supplier_a, supplier_b)
    awarded_at = NOW + timedelta(days=31)

    result = await bid_service.award_bid(db, tender.id, low.id, owner, now=awarded_at)

    assert result.success
    awarded = result.tender
    assert awarded.status == "awarded"
    assert awarded.awarded_bid_id == low.id
    assert awarded.awarded_at == awarded_at
    assert awarded.standstill_start_date == awarded_at
    assert awarded.standstill_end_date - awarded.standstill_start_date == timedelta(
        days=settings.STANDSTILL_PERIOD_DAYS
    )
    statuses = {b.id: b.status for b in awarded.bids}
    assert statuses == {low.id: "awarded", high.id: "submitted"}
    assert awarded.history[-1].action == "awarded"
    assert "Kontrakt tildelt Entreprenør B AS" in sent_alerts[-1][1]


async def test_award_leaves_losing_bids_unchanged(db, owner, supplier_a, supplier_b, create_open_tender):
    tender = await create_open_tender()
    high, low = await submit_two_bids(db, tender, supplier_a, supplier_b)
    await bid_service.evaluate_bid(db, tender.id, high.id, owner, score=60)

    result = await bid_service.award_bid(db, tender.id, low.id, owner, now=NOW)

    assert {b.id: b.status for b in result.tender.bids} == {high.id: "evaluated", low.id: "awarded"}
    with pytest.raises(ValidationError):
        Bid.model_validate({**high.model_dump(), "status": "rejected"})


async def test_second_award_is_a_conflict(db, owner, supplier_a, supplier_b, create_open_tender):
    tender = await create_open_tender()
    high, low = await submit_two_bids(db, tender, supplier_a, supplier_b)
    await bid_service.award_bid(db, tender.id, low.id, owner, now=NOW)

    result = await bid_service.award_bid(db, tender.id, high.id, owner, now=NOW + timedelta(hours=1))

    assert result.success is False
    assert result.error == "Anskaffelsen er allerede tildelt"
    assert result.error_code == "conflict"
    current = await tender_service.get_tender(db, tender.id)
    assert current.awarded_bid_id == low.id
    assert [b.id for b in current.bids if b.status == "awarded"] == [low.id]


async def test_repeated_award_of_same_bid_keeps_original_stamp(db, owner, supplier_a, supplier_b,
                                                               create_open_tender):
    tender = await create_open_tender()
    _, low = await submit_two_bids(db, tender, supplier_a, supplier_b)
    first = await bid_service.award_bid(db, tender.id, low.id, owner, now=NOW)

    again = await bid_service.award_bid(db, tender.id, low.id, owner, now=NOW + timedelta(days=2))

    assert again.success
    assert again.tender.awarded_at == first.tender.awarded_at
    assert again.tender.standstill_end_date == first.tender.standstill_end_date
    assert [h.action for h in again.tender.history].count("awarded") == 1


async def test_award_unknown_bid(db, owner, create_open_tender):
    tender = await create_open_tender()

    result = await bid_service.award_bid(db, tender.id, "bid_missing", owner, now=NOW)

    assert result.error == "Tilbud ikke funnet"
    assert result.error_code == "not_found"


async def test_award_from_closed_tender(db, owner, supplier_a, create_open_tender):
    tender = await create_open_tender()
    bid = (await bid_service.submit_bid(db, tender.id, BidCreate(price=75000), supplier_a, now=NOW)).bid
    await tender_service.close_tender(db, tender.id, owner, now=NOW)

    result = await bid_service.award_bid(db, tender.id, bid.id, owner, now=NOW)

    assert result.tender.status == "awarded"


async def test_supplier_cannot_award(db, supplier_a, create_open_tender):
    tender = await create_open_tender()
    bid = (await bid_service.submit_bid(db, tender.id, BidCreate(price=75000), supplier_a, now=NOW)).bid

    result = await bid_service.award_bid(db, tender.id, bid.id, supplier_a, now=NOW)

    assert result.error_code == "forbidden"


async def test_no_bids_after_award(db, owner, supplier_a, supplier_b, create_open_tender):
    tender = await create_open_tender()
    bid = (await bid_service.submit_bid(db, tender.id, BidCreate(price=75000), supplier_a, now=NOW)).bid
    await bid_service.award_bid(db, tender.id, bid.id, owner, now=NOW)

    result = await bid_service.submit_bid(db, tender.id, BidCreate(price=70000), supplier_b, now=NOW)

    assert result.error_code == "conflict"


async def test_award_during_upload_rejects_bid(db, owner, supplier_a, supplier_b, create_open_tender,
                                               storage, monkeypatch):
    tender = await create_open_tender()
    winner = (await bid_service.submit_bid(db, tender.id, BidCreate(price=90000), supplier_b, now=NOW)).bid

    async def upload_while_owner_awards(content, path, file_name, content_type=None):
        awarded = await bid_service.award_bid(db, tender.id, winner.id, owner, now=NOW)
        assert awarded.success
        return await storage.upload_file(content, path, file_name, content_type)

    monkeypatch.setattr(bid_service, "upload_file", upload_while_owner_awards)
    result = await bid_service.submit_bid(
        db, tender.id, BidCreate(price=85000), supplier_a,
        files=[UploadedFile(name="Tilbud.pdf", content=b"%PDF")], now=NOW,
    )

    assert result.success is False
    assert result.error_code == "conflict"
    assert result.error == bid_service.NOT_ACCEPTING
    assert await count_bids(db, tender.id) == 1
    assert storage.files == {}
    current = await tender_service.get_tender(db, tender.id)
    assert current.status == "awarded"
    assert [b.id for b in current.bids] == [winner.id]


async def test_close_during_upload_rejects_bid(db, owner, supplier_a, create_open_tender, storage, monkeypatch):
    tender = await create_open_tender()

    async def upload_while_owner_closes(content, path, file_name, content_type=None):
        assert (await tender_service.close_tender(db, tender.id, owner, now=NOW)).success
        return await storage.upload_file(content, path, file_name, content_type)

    monkeypatch.setattr(bid_service, "upload_file", upload_while_owner_closes)
    result = await bid_service.submit_bid(
        db, tender.id, BidCreate(price=85000), supplier_a,
        files=[UploadedFile(name="Tilbud.pdf", content=b"%PDF")], now=NOW,
    )

    assert result.error_code == "conflict"
    assert await count_bids(db, tender.id) == 0
    assert len(storage.deleted) == 1


async def test_contract_gate_follows_standstill(db, owner, supplier_a, create_open_tender):
    tender = await create_open_tender()
    bid = (await bid_service.submit_bid(db, tender.id, BidCreate(price=75000), supplier_a, now=NOW)).bid
    awarded = (await bid_service.award_bid(db, tender.id, bid.id, owner, now=NOW)).tender

    end = awarded.standstill_end_date
    assert check_contract_allowed(awarded, now=end - timedelta(minutes=1)).allowed is False
    assert check_contract_allowed(awarded, now=end).allowed is True

    status = await bid_service.get_tender_standstill(db, tender.id, now=NOW + timedelta(days=3))
    assert status.ended is False
    assert status.remaining_days == settings.STANDSTILL_PERIOD_DAYS - 3


async def test_evaluate_bid(db, owner, supplier_a, create_open_tender):
    tender = await create_open_tender()
    bid = (await bid_service.submit_bid(db, tender.id, BidCreate(price=75000), supplier_a, now=NOW)).bid

    result = await bid_service.evaluate_bid(db, tender.id, bid.id, owner, score=87.5, notes="Godt tilbud")

    assert result.bid.status == "evaluated"
    assert result.bid.score == 87.5
    assert result.bid.price == 75000
