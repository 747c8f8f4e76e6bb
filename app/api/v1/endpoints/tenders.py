from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import check_result, get_actor
from app.core.logging_config import logger
from app.crud.tenders import get_tender_by_id
from app.db.database import get_db
from app.schemas.common import Actor
from app.schemas.document import UploadedFile
from app.schemas.tenders import (
    ContractGate,
    DeadlineReminderSweepResult,
    ExpirySweepResult,
    InvitationCreate,
    TenderCreate,
    TenderDetail,
    TenderResult,
    TenderShort,
    TenderUpdate,
)
from app.services import tender_service
from app.services.standstill import check_contract_allowed

router = APIRouter()


class QuestionCreate(BaseModel):
    question: str


class AnswerCreate(BaseModel):
    answer: str


@router.get("/", response_model=List[TenderShort])
async def get_tenders(
        project_id: Optional[str] = Query(None, description="Фильтр по проекту"),
        status: Optional[str] = Query(None, description="Фильтр по статусу"),
        mine: bool = Query(True, description="Только тендеры текущего пользователя"),
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    logger.info(f"Fetching tenders for {actor.id}: project={project_id}, status={status}")
    owner_id = actor.id if mine else None
    return await tender_service.list_tenders(
        db,
        owner_id=owner_id,
        project_id=project_id,
        status=status,
        sweep_expired=owner_id is not None and actor.is_sender,
    )


@router.get("/invitations", response_model=List[TenderShort])
async def get_my_invitations(db: AsyncSession = Depends(get_db), actor: Actor = Depends(get_actor)):
    return await tender_service.get_invitations_for_supplier(db, supplier_id=actor.id, email=actor.email)


@router.post("/expire", response_model=ExpirySweepResult)
async def close_expired(db: AsyncSession = Depends(get_db), actor: Actor = Depends(get_actor)):
    if not actor.is_sender:
        raise HTTPException(status_code=403, detail=tender_service.SENDER_ONLY)
    return await tender_service.close_expired_tenders(db, owner_id=actor.id)


@router.post("/deadline-reminders", response_model=DeadlineReminderSweepResult)
async def send_deadline_reminders(db: AsyncSession = Depends(get_db), actor: Actor = Depends(get_actor)):
    if not actor.is_sender:
        raise HTTPException(status_code=403, detail=tender_service.SENDER_ONLY)
    return await tender_service.send_deadline_reminders(db, owner_id=actor.id)


@router.post("/", response_model=TenderResult, status_code=201)
async def create_tender(data: TenderCreate, db: AsyncSession = Depends(get_db), actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.create_tender(db, data, actor))


@router.get("/{tender_id}", response_model=TenderDetail)
async def get_tender_detail(tender_id: str, db: AsyncSession = Depends(get_db)):
    logger.info(f"Fetching details for tender {tender_id}")
    tender = await tender_service.get_tender(db, tender_id)
    if not tender:
        raise HTTPException(status_code=404, detail=tender_service.NOT_FOUND)
    return tender


@router.patch("/{tender_id}", response_model=TenderResult)
async def update_tender(tender_id: str, patch: TenderUpdate, db: AsyncSession = Depends(get_db),
                        actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.update_tender(db, tender_id, patch, actor))


@router.delete("/{tender_id}", response_model=TenderResult)
async def delete_tender(tender_id: str, db: AsyncSession = Depends(get_db), actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.delete_tender(db, tender_id, actor))


@router.post("/{tender_id}/publish", response_model=TenderResult)
async def publish_tender(tender_id: str, db: AsyncSession = Depends(get_db), actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.publish_tender(db, tender_id, actor))


@router.post("/{tender_id}/close", response_model=TenderResult)
async def close_tender(tender_id: str, db: AsyncSession = Depends(get_db), actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.close_tender(db, tender_id, actor))


@router.post("/{tender_id}/reopen", response_model=TenderResult)
async def reopen_tender(tender_id: str, db: AsyncSession = Depends(get_db), actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.reopen_tender(db, tender_id, actor))


@router.post("/{tender_id}/invitations", response_model=TenderResult)
async def invite_supplier(tender_id: str, invitation: InvitationCreate, db: AsyncSession = Depends(get_db),
                          actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.add_supplier_invitation(db, tender_id, invitation, actor))


@router.post("/{tender_id}/invitations/viewed", response_model=TenderResult)
async def mark_viewed(tender_id: str, db: AsyncSession = Depends(get_db), actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.mark_invitation_viewed(db, tender_id, actor))


@router.post("/{tender_id}/questions", response_model=TenderResult)
async def ask_question(tender_id: str, data: QuestionCreate, db: AsyncSession = Depends(get_db),
                       actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.add_question(db, tender_id, data.question, actor))


@router.post("/{tender_id}/questions/{question_id}/answer", response_model=TenderResult)
async def answer_question(tender_id: str, question_id: str, data: AnswerCreate, db: AsyncSession = Depends(get_db),
                          actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.answer_question(db, tender_id, question_id, data.answer, actor))


@router.post("/{tender_id}/documents", response_model=TenderResult)
async def upload_documents(
        tender_id: str,
        files: List[UploadFile] = File(...),
        db: AsyncSession = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    uploaded = [
        UploadedFile(name=f.filename, content=await f.read(), content_type=f.content_type)
        for f in files
    ]
    return check_result(await tender_service.add_documents_to_tender(db, tender_id, uploaded, actor))


@router.delete("/{tender_id}/documents/{document_id}", response_model=TenderResult)
async def remove_document(tender_id: str, document_id: str, db: AsyncSession = Depends(get_db),
                          actor: Actor = Depends(get_actor)):
    return check_result(await tender_service.remove_document_from_tender(db, tender_id, document_id, actor))


@router.post("/{tender_id}/documents/{document_id}/versions/{version_number}/restore", response_model=TenderResult)
async def restore_document(tender_id: str, document_id: str, version_number: int,
                           db: AsyncSession = Depends(get_db), actor: Actor = Depends(get_actor)):
    return check_result(
        await tender_service.restore_tender_document(db, tender_id, document_id, version_number, actor)
    )


@router.get("/{tender_id}/contract-gate", response_model=ContractGate)
async def contract_gate(tender_id: str, db: AsyncSession = Depends(get_db)):
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        raise HTTPException(status_code=404, detail=tender_service.NOT_FOUND)
    return check_contract_allowed(tender)
