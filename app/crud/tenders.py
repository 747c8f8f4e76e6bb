from datetime import datetime
from typing import Sequence

from sqlalchemy import delete, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from app.core.logging_config import logger
from app.models.documents import TenderDocument
from app.models.tenders import Bid, InvitedSupplier, Tender, TenderHistory, TenderQuestion


def _aggregate_query():
    return select(Tender).options(
        selectinload(Tender.bids),
        selectinload(Tender.invited_suppliers),
        selectinload(Tender.qa),
        selectinload(Tender.documents),
        selectinload(Tender.history),
    )


async def get_tender_by_id(db: AsyncSession, tender_id: str) -> Tender | None:
    """Получает тендер по id со всеми коллекциями агрегата."""
    result = await db.execute(
        _aggregate_query()
        .filter(Tender.id == tender_id)
        .execution_options(populate_existing=True)
    )
    tender = result.scalars().first()
    if not tender:
        logger.warning(f"Tender with id {tender_id} not found")
    return tender


async def list_tenders(
        db: AsyncSession,
        created_by: str | None = None,
        project_id: str | None = None,
        status: str | None = None,
) -> Sequence[Tender]:
    query = select(Tender)
    if created_by:
        query = query.where(Tender.created_by == created_by)
    if project_id:
        query = query.where(Tender.project_id == project_id)
    if status:
        query = query.where(Tender.status == status)
    result = await db.execute(query.order_by(Tender.created_at.desc()))
    return result.scalars().all()


async def list_expired_open_tenders(db: AsyncSession, now: datetime, created_by: str | None = None) -> Sequence[str]:
    query = select(Tender.id).where(Tender.status == "open", Tender.deadline < now)
    if created_by:
        query = query.where(Tender.created_by == created_by)
    result = await db.execute(query)
    return result.scalars().all()


async def list_open_tenders_due(db: AsyncSession, now: datetime, until: datetime,
                                created_by: str | None = None) -> Sequence[Tender]:
    """Open tenders whose deadline falls in ``[now, until)``, with invitations and bids loaded."""
    query = _aggregate_query().where(Tender.status == "open", Tender.deadline >= now, Tender.deadline < until)
    if created_by:
        query = query.where(Tender.created_by == created_by)
    result = await db.execute(query.order_by(Tender.deadline).execution_options(populate_existing=True))
    return result.scalars().all()


async def list_tenders_for_supplier(db: AsyncSession, supplier_id: str | None, email: str | None) -> Sequence[Tender]:
    conditions = []
    if supplier_id:
        conditions.append(InvitedSupplier.supplier_id == supplier_id)
    if email:
        conditions.append(func.lower(func.trim(InvitedSupplier.email)) == email.strip().lower())
    if not conditions:
        return []
    result = await db.execute(
        select(Tender)
        .join(InvitedSupplier, InvitedSupplier.tender_id == Tender.id)
        .where(or_(*conditions), Tender.status != "draft")
        .distinct()
        .order_by(Tender.deadline)
    )
    return result.scalars().all()


def add_history(db: AsyncSession, tender_id: str, action: str, timestamp: datetime,
                actor_id: str | None, actor_name: str | None, note: str | None = None) -> TenderHistory:
    entry = TenderHistory(
        tender_id=tender_id,
        action=action,
        timestamp=timestamp,
        actor_id=actor_id,
        actor_name=actor_name,
        note=note,
    )
    db.add(entry)
    return entry


async def transition_status(db: AsyncSession, tender_id: str, expected_status: str, new_status: str) -> bool:
    """Conditional write: succeeds only if the stored status still equals expected_status."""
    result = await db.execute(
        update(Tender)
        .where(Tender.id == tender_id, Tender.status == expected_status)
        .values(status=new_status)
    )
    return result.rowcount == 1


async def claim_open_tender(db: AsyncSession, tender_id: str, now: datetime) -> bool:
    """Conditional write that matches only while the tender is open and before its deadline.

    Runs in the bid transaction, so an award or close committed meanwhile makes it match nothing.
    """
    result = await db.execute(
        update(Tender)
        .where(
            Tender.id == tender_id,
            Tender.status == "open",
            or_(Tender.deadline.is_(None), Tender.deadline >= now),
        )
        .values(status="open")
    )
    return result.rowcount == 1


async def mark_awarded(db: AsyncSession, tender_id: str, bid_id: str, awarded_at: datetime,
                       standstill_end_date: datetime) -> bool:
    """Conditional write: only the first award on a tender matches ``awarded_bid_id IS NULL``."""
    result = await db.execute(
        update(Tender)
        .where(
            Tender.id == tender_id,
            Tender.awarded_bid_id.is_(None),
            Tender.status.in_(("open", "closed")),
        )
        .values(
            awarded_bid_id=bid_id,
            status="awarded",
            awarded_at=awarded_at,
            standstill_start_date=awarded_at,
            standstill_end_date=standstill_end_date,
        )
    )
    if result.rowcount != 1:
        return False
    await db.execute(
        update(Bid)
        .where(Bid.id == bid_id, Bid.tender_id == tender_id)
        .values(status="awarded")
    )
    return True


async def get_bid(db: AsyncSession, tender_id: str, bid_id: str) -> Bid | None:
    result = await db.execute(select(Bid).filter(Bid.id == bid_id, Bid.tender_id == tender_id))
    return result.scalars().first()


async def get_question(db: AsyncSession, tender_id: str, question_id: str) -> TenderQuestion | None:
    result = await db.execute(
        select(TenderQuestion).filter(TenderQuestion.id == question_id, TenderQuestion.tender_id == tender_id)
    )
    return result.scalars().first()


async def count_bids(db: AsyncSession, tender_id: str) -> int:
    result = await db.execute(select(func.count()).select_from(Bid).where(Bid.tender_id == tender_id))
    return result.scalar_one()


async def delete_tender_row(db: AsyncSession, tender_id: str) -> None:
    # SQLite без PRAGMA foreign_keys не выполняет ON DELETE CASCADE
    for model in (Bid, InvitedSupplier, TenderQuestion, TenderHistory, TenderDocument):
        await db.execute(delete(model).where(model.tender_id == tender_id))
    await db.execute(delete(Tender).where(Tender.id == tender_id))
