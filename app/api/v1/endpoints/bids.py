from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import check_result, get_actor
from app.db.database import get_db
from app.schemas.common import Actor
from app.schemas.document import UploadedFile
from app.schemas.tenders import BidCreate, BidResult, PriceStructure, StandstillStatus, TenderResult
from app.services import bid_service
from app.services.tender_service import NOT_FOUND

router = APIRouter()


class BidEvaluation(BaseModel):
    score: Optional[float] = None
    notes: Optional[str] = None


@router.post("/{tender_id}/bids", response_model=BidResult, status_code=201)
async def submit_bid(
        tender_id: str,
        price: Optional[float] = Form(None),
        price_structure: PriceStructure = Form("fastpris"),
        hourly_rate: Optional[float] = Form(None),
        estimated_hours: Optional[float] = Form(None),
        notes: Optional[str] = Form(None),
        files: Optional[List[UploadFile]] = File(None),
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    bid_data = BidCreate(
        price=price,
        price_structure=price_structure,
        hourly_rate=hourly_rate,
        estimated_hours=estimated_hours,
        notes=notes,
    )
    uploaded = [
        UploadedFile(name=f.filename, content=await f.read(), content_type=f.content_type)
        for f in files or []
    ]
    return check_result(await bid_service.submit_bid(db, tender_id, bid_data, actor, files=uploaded))


@router.post("/{tender_id}/bids/{bid_id}/award", response_model=TenderResult)
async def award_bid(tender_id: str, bid_id: str, db: AsyncSession = Depends(get_db),
                    actor: Actor = Depends(get_actor)):
    return check_result(await bid_service.award_bid(db, tender_id, bid_id, actor))


@router.post("/{tender_id}/bids/{bid_id}/evaluate", response_model=BidResult)
async def evaluate_bid(tender_id: str, bid_id: str, evaluation: BidEvaluation, db: AsyncSession = Depends(get_db),
                       actor: Actor = Depends(get_actor)):
    return check_result(
        await bid_service.evaluate_bid(db, tender_id, bid_id, actor, score=evaluation.score, notes=evaluation.notes)
    )


@router.get("/{tender_id}/standstill", response_model=StandstillStatus)
async def get_standstill(tender_id: str, db: AsyncSession = Depends(get_db)):
    status = await bid_service.get_tender_standstill(db, tender_id)
    if not status:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return status
