from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from transitions import MachineError

from app.core.clock import ensure_aware, utcnow
from app.core.logging_config import logger
from app.crud.tenders import add_history, claim_open_tender, get_bid, get_tender_by_id, mark_awarded
from app.models.base import new_id
from app.models.tenders import Bid as BidModel
from app.models.tenders import Tender
from app.schemas.common import Actor
from app.schemas.document import UploadedFile
from app.schemas.tenders import Bid, BidCreate, BidResult, StandstillStatus, TenderResult
from app.services.notifications import notify_bid_awarded, notify_new_bid
from app.services.standstill import calculate_standstill_end_date, get_standstill_status
from app.services.storage import StorageError, delete_file, get_bid_document_path, upload_file
from app.services.tender_service import NOT_FOUND, forbidden, not_found, tender_result, upstream_failure
from app.services.tender_state_machine import TenderStateMachine
from app.services.tender_validator import normalize_email, validate_bid

ALREADY_AWARDED = "Anskaffelsen er allerede tildelt"
NOT_ACCEPTING = "Anskaffelsen tar ikke lenger imot tilbud"
BID_NOT_FOUND = "Tilbud ikke funnet"


def is_eligible(tender: Tender, actor: Actor) -> bool:
    """Приглашённый поставщик (по supplier_id или e-mail) или заказчик."""
    if actor.is_sender:
        return True
    email = normalize_email(actor.email)
    for invitation in tender.invited_suppliers:
        if invitation.supplier_id and invitation.supplier_id == actor.id:
            return True
        if email and normalize_email(invitation.email) == email:
            return True
    return False


async def submit_bid(
        db: AsyncSession,
        tender_id: str,
        bid_data: BidCreate,
        actor: Actor,
        files: Optional[List[UploadedFile]] = None,
        now: Optional[datetime] = None,
) -> BidResult:
    now = ensure_aware(now) or utcnow()
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return BidResult(success=False, error=NOT_FOUND, error_code="not_found")

    deadline = ensure_aware(tender.deadline)
    if deadline and now > deadline:
        logger.info(f"Late bid from {actor.id} on tender {tender_id} rejected")
        return BidResult(success=False, error="Fristen for å levere tilbud har gått ut", error_code="conflict")
    if tender.status != "open":
        return BidResult(
            success=False,
            error=f"Anskaffelsen tar ikke imot tilbud (status '{tender.status}')",
            error_code="conflict",
        )
    if not is_eligible(tender, actor):
        logger.warning(f"Supplier {actor.id} is not invited to tender {tender_id}")
        return BidResult(success=False, error="Du er ikke invitert til denne anskaffelsen", error_code="forbidden")

    errors = validate_bid(bid_data)
    if errors:
        return BidResult(success=False, error=next(iter(errors.values())), error_code="validation", errors=errors)

    bid_id = new_id("bid")
    documents = []
    for file in files or []:
        try:
            stored = await upload_file(
                file.content,
                get_bid_document_path(tender_id, bid_id, file.name),
                file.name,
                file.content_type,
            )
        except StorageError as e:
            await _discard_blobs([doc["storage_path"] for doc in documents])
            return BidResult(success=False, error=str(e), error_code="upstream")
        documents.append({
            "name": stored.name,
            "url": stored.url,
            "storage_path": stored.path,
            "size": stored.size,
            "type": stored.type,
            "uploaded_at": now.isoformat(),
        })

    bid = BidModel(
        id=bid_id,
        tender_id=tender_id,
        supplier_id=actor.id,
        company_id=actor.company_id,
        company_name=actor.company_name or actor.display_name,
        price=bid_data.price,
        price_structure=bid_data.price_structure,
        hourly_rate=bid_data.hourly_rate,
        estimated_hours=bid_data.estimated_hours,
        submitted_at=now,
        documents=documents,
        notes=bid_data.notes,
        status="submitted",
    )
    try:
        # Статус мог измениться, пока загружались файлы
        if not await claim_open_tender(db, tender_id, now):
            await db.rollback()
            logger.warning(f"Tender {tender_id} stopped accepting bids before bid {bid_id} was saved")
            await _discard_blobs([doc["storage_path"] for doc in documents])
            return BidResult(success=False, error=NOT_ACCEPTING, error_code="conflict")
        db.add(bid)
        add_history(db, tender_id, "bid_submitted", now, actor.id, actor.display_name,
                    f"Tilbud fra {bid.company_name}")
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error saving bid for tender {tender_id}: {str(e)}")
        await _discard_blobs([doc["storage_path"] for doc in documents])
        return BidResult(success=False, error="Kunne ikke sende tilbud. Prøv igjen.", error_code="upstream")

    logger.info(f"Bid {bid_id} submitted to tender {tender_id} by {actor.id}")
    tender = await get_tender_by_id(db, tender_id)
    await notify_new_bid(tender, bid.company_name, bid.price)
    return BidResult(success=True, bid=Bid.model_validate(bid))


async def _discard_blobs(paths: List[str]) -> None:
    for path in paths:
        try:
            await delete_file(path)
        except StorageError:
            logger.warning(f"Orphaned bid blob {path}")


async def award_bid(db: AsyncSession, tender_id: str, bid_id: str, actor: Actor,
                    now: Optional[datetime] = None) -> TenderResult:
    if not actor.is_sender:
        return forbidden()
    now = ensure_aware(now) or utcnow()
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()
    bid = await get_bid(db, tender_id, bid_id)
    if not bid:
        return TenderResult(success=False, error=BID_NOT_FOUND, error_code="not_found")

    if tender.awarded_bid_id:
        if tender.awarded_bid_id == bid_id:
            return tender_result(tender)
        return TenderResult(success=False, error=ALREADY_AWARDED, error_code="conflict")

    sm = TenderStateMachine(tender, tender_id)
    try:
        await sm.award(now=now)
    except MachineError:
        return TenderResult(
            success=False,
            error=f"Kan ikke tildele anskaffelse med status '{tender.status}'",
            error_code="conflict",
        )

    standstill_end_date = calculate_standstill_end_date(now)
    try:
        if not await mark_awarded(db, tender_id, bid_id, now, standstill_end_date):
            await db.rollback()
            # Другой запрос успел тендер присудить
            logger.warning(f"Concurrent award on tender {tender_id}, bid {bid_id} lost")
            current = await get_tender_by_id(db, tender_id)
            if current and current.awarded_bid_id == bid_id:
                return tender_result(current)
            return TenderResult(success=False, error=ALREADY_AWARDED, error_code="conflict")
        add_history(db, tender_id, "awarded", now, actor.id, actor.display_name,
                    f"Tildelt {bid.company_name or bid.supplier_id}")
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error awarding bid {bid_id} on tender {tender_id}: {str(e)}")
        return upstream_failure("Kunne ikke tildele kontrakt. Prøv igjen.")

    tender = await get_tender_by_id(db, tender_id)
    logger.info(f"Tender {tender_id} awarded to bid {bid_id}, standstill until {standstill_end_date.isoformat()}")
    await notify_bid_awarded(tender, bid.company_name, standstill_end_date)
    return tender_result(tender)


async def evaluate_bid(db: AsyncSession, tender_id: str, bid_id: str, actor: Actor,
                       score: Optional[float] = None, notes: Optional[str] = None) -> BidResult:
    if not actor.is_sender:
        return BidResult(success=False, error="Kun oppdragsgiver kan evaluere tilbud", error_code="forbidden")
    bid = await get_bid(db, tender_id, bid_id)
    if not bid:
        return BidResult(success=False, error=BID_NOT_FOUND, error_code="not_found")

    if score is not None:
        bid.score = score
    if notes is not None:
        bid.notes = notes
    if bid.status == "submitted":
        bid.status = "evaluated"
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error evaluating bid {bid_id}: {str(e)}")
        return BidResult(success=False, error="Kunne ikke lagre evaluering. Prøv igjen.", error_code="upstream")
    return BidResult(success=True, bid=Bid.model_validate(bid))


async def get_tender_standstill(db: AsyncSession, tender_id: str,
                                now: Optional[datetime] = None) -> Optional[StandstillStatus]:
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return None
    return get_standstill_status(tender, now)
