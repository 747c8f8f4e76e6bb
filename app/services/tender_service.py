from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from transitions import MachineError

from app.core.clock import ensure_aware, utcnow
from app.core.config import settings
from app.core.logging_config import logger
from app.crud.documents import (
    delete_versions_by_context,
    get_tender_document,
    get_tender_document_by_name,
    get_versions_by_context,
)
from app.crud.tenders import (
    add_history,
    count_bids,
    delete_tender_row,
    get_question,
    get_tender_by_id,
    list_expired_open_tenders,
    list_open_tenders_due,
    list_tenders as crud_list_tenders,
    list_tenders_for_supplier,
    transition_status,
)
from app.models.base import new_id
from app.models.documents import TenderDocument as TenderDocumentModel
from app.models.tenders import InvitedSupplier as InvitedSupplierModel
from app.models.tenders import Tender, TenderQuestion
from app.schemas.common import SYSTEM_ACTOR, Actor
from app.schemas.document import DocumentData, UploadedFile
from app.schemas.tenders import (
    DeadlineReminder,
    DeadlineReminderSweepResult,
    ExpirySweepResult,
    InvitationCreate,
    SweepError,
    TenderCreate,
    TenderDetail,
    TenderResult,
    TenderShort,
    TenderUpdate,
)
from app.services.document_versioning import create_version, restore_version
from app.services.notifications import notify_deadline_reminder, notify_question, notify_tender_invitation
from app.services.storage import StorageError, delete_file, get_tender_document_path, upload_file
from app.services.tender_state_machine import TenderStateMachine
from app.services.tender_validator import normalize_email, validate_tender, validate_tender_dates

NOT_FOUND = "Anskaffelse ikke funnet"
UPDATE_FAILED = "Kunne ikke oppdatere Anskaffelse. Prøv igjen."
SENDER_ONLY = "Kun oppdragsgiver kan utføre denne handlingen"
DRAFT_NO_QA = "Du kan ikke stille spørsmål før Anskaffelsen er publisert. Endre status til 'Åpen' først."
DOCUMENT_NOT_FOUND = "Dokument ikke funnet"

NS_FIELDS = {"NS8405": "ns8405", "NS8406": "ns8406", "NS8407": "ns8407"}

# trigger -> (history action, note, error when the guard rejects the transition)
TRANSITIONS = {
    "publish": ("published", "Anskaffelse publisert", "Fristen har allerede gått ut"),
    "close": ("closed", "Anskaffelse lukket", None),
    "expire": ("closed", "Automatisk lukket etter utløpt frist", "Fristen har ikke gått ut"),
    "reopen": ("reopened", "Anskaffelse gjenåpnet", "Kan ikke gjenåpne: fristen har gått ut"),
}


def not_found() -> TenderResult:
    return TenderResult(success=False, error=NOT_FOUND, error_code="not_found")


def forbidden() -> TenderResult:
    return TenderResult(success=False, error=SENDER_ONLY, error_code="forbidden")


def upstream_failure(message: str = UPDATE_FAILED) -> TenderResult:
    return TenderResult(success=False, error=message, error_code="upstream")


def tender_result(tender: Tender) -> TenderResult:
    return TenderResult(success=True, tender=TenderDetail.model_validate(tender))


def _ns_terms(contract_standard: Optional[str], data) -> dict:
    """Keeps only the NS block that matches the contract standard."""
    values = {field: None for field in NS_FIELDS.values()}
    field = NS_FIELDS.get(contract_standard)
    if field:
        terms = getattr(data, field)
        values[field] = terms.model_dump(mode="json") if terms is not None else {}
    return values


async def get_tender(db: AsyncSession, tender_id: str) -> Optional[TenderDetail]:
    tender = await get_tender_by_id(db, tender_id)
    return TenderDetail.model_validate(tender) if tender else None


async def list_tenders(
        db: AsyncSession,
        owner_id: Optional[str] = None,
        project_id: Optional[str] = None,
        status: Optional[str] = None,
        sweep_expired: bool = False,
        now: Optional[datetime] = None,
) -> List[TenderShort]:
    if sweep_expired:
        sweep = await close_expired_tenders(db, owner_id, now=now)
        if sweep.closed:
            logger.info(f"Closed {sweep.closed} expired tenders for owner {owner_id}")
    tenders = await crud_list_tenders(db, created_by=owner_id, project_id=project_id, status=status)
    return [TenderShort.model_validate(t) for t in tenders]


async def get_invitations_for_supplier(db: AsyncSession, supplier_id: Optional[str] = None,
                                       email: Optional[str] = None) -> List[TenderShort]:
    tenders = await list_tenders_for_supplier(db, supplier_id, email)
    return [TenderShort.model_validate(t) for t in tenders]


async def create_tender(db: AsyncSession, data: TenderCreate, actor: Actor,
                        now: Optional[datetime] = None) -> TenderResult:
    if not actor.is_sender:
        return forbidden()
    now = ensure_aware(now) or utcnow()
    errors = validate_tender(
        data.project_id,
        data.title,
        data.contract_standard,
        data.deadline,
        data.publish_date,
        data.question_deadline,
        now=now,
    )
    if errors:
        logger.info(f"Tender validation failed: {errors}")
        return TenderResult(success=False, error="Skjemaet inneholder feil", error_code="validation", errors=errors)

    tender_id = new_id("tender")
    tender = Tender(
        id=tender_id,
        project_id=data.project_id,
        title=data.title.strip(),
        description=(data.description or "").strip(),
        contract_standard=data.contract_standard,
        status=data.status,
        price=data.price,
        entrepriseform=data.entrepriseform,
        cpv=data.cpv,
        evaluation_criteria=data.evaluation_criteria,
        publish_date=data.publish_date,
        question_deadline=data.question_deadline,
        deadline=data.deadline,
        created_at=now,
        created_by=actor.id,
        **_ns_terms(data.contract_standard, data),
    )
    db.add(tender)

    seen = set()
    invitations = []
    for invitation in data.invited_suppliers:
        key = invitation.supplier_id or normalize_email(invitation.email)
        if not key or key in seen:
            continue
        seen.add(key)
        invitations.append(invitation)
        db.add(InvitedSupplierModel(
            tender_id=tender_id,
            supplier_id=invitation.supplier_id,
            company_id=invitation.company_id,
            company_name=invitation.company_name,
            org_number=invitation.org_number,
            email=invitation.email,
            invited_at=now,
            status="invited",
        ))

    add_history(db, tender_id, "created", now, actor.id, actor.display_name, f"Opprettet med status {data.status}")
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating tender: {str(e)}")
        return upstream_failure("Kunne ikke opprette Anskaffelse. Prøv igjen.")

    tender = await get_tender_by_id(db, tender_id)
    logger.info(f"Tender {tender_id} created by {actor.id} with status {tender.status}")

    if tender.status != "draft":
        for invitation in invitations:
            await notify_tender_invitation(tender, invitation.company_name, invitation.email)
    return tender_result(tender)


async def update_tender(db: AsyncSession, tender_id: str, patch: TenderUpdate, actor: Actor,
                        now: Optional[datetime] = None) -> TenderResult:
    if not actor.is_sender:
        return forbidden()
    now = ensure_aware(now) or utcnow()
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()
    if tender.status == "awarded":
        return TenderResult(success=False, error="Tildelt anskaffelse kan ikke endres", error_code="conflict")

    values = patch.model_dump(exclude_unset=True)
    errors = {}
    if "title" in values and not (values["title"] or "").strip():
        errors["title"] = "Tittel er påkrevd"
    if "deadline" in values:
        deadline = ensure_aware(values["deadline"])
        if deadline is None:
            errors["deadline"] = "Frist er påkrevd"
        elif deadline <= now:
            errors["deadline"] = "Frist må være i fremtiden"
    errors.update(validate_tender_dates(
        values.get("deadline", tender.deadline),
        values.get("publish_date", tender.publish_date),
        values.get("question_deadline", tender.question_deadline),
    ))
    own_ns_field = NS_FIELDS.get(tender.contract_standard)
    for field in NS_FIELDS.values():
        if field in values and field != own_ns_field and values[field] is not None:
            errors[field] = "Gjelder ikke for valgt kontraktstandard"
    if errors:
        return TenderResult(success=False, error="Skjemaet inneholder feil", error_code="validation", errors=errors)

    for field in ("title", "description"):
        if field in values and values[field] is not None:
            setattr(tender, field, values[field].strip())
    for field in ("price", "publish_date", "question_deadline", "deadline", "entrepriseform", "cpv",
                  "evaluation_criteria"):
        if field in values:
            setattr(tender, field, values[field])
    if own_ns_field and own_ns_field in values:
        terms = getattr(patch, own_ns_field)
        merged = dict(getattr(tender, own_ns_field) or {})
        if terms is not None:
            merged.update(terms.model_dump(mode="json", exclude_unset=True))
        setattr(tender, own_ns_field, merged)

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error updating tender {tender_id}: {str(e)}")
        return upstream_failure()

    logger.info(f"Tender {tender_id} updated by {actor.id}: {sorted(values)}")
    return tender_result(await get_tender_by_id(db, tender_id))


async def _apply_transition(db: AsyncSession, tender_id: str, trigger: str, actor: Actor,
                            now: Optional[datetime] = None, validate: bool = False) -> TenderResult:
    now = ensure_aware(now) or utcnow()
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()

    if validate:
        errors = validate_tender(
            tender.project_id,
            tender.title,
            tender.contract_standard,
            tender.deadline,
            tender.publish_date,
            tender.question_deadline,
            now=now,
        )
        if errors:
            return TenderResult(success=False, error="Skjemaet inneholder feil", error_code="validation",
                                errors=errors)

    action, note, guard_error = TRANSITIONS[trigger]
    source = tender.status
    sm = TenderStateMachine(tender, tender_id)
    try:
        await getattr(sm, trigger)(now=now)
    except MachineError:
        logger.warning(f"Transition {trigger} not allowed for tender {tender_id} in state {source}")
        return TenderResult(
            success=False,
            error=f"Handlingen er ikke tillatt for anskaffelse med status '{source}'",
            error_code="conflict",
        )
    if sm.state == source:
        return TenderResult(success=False, error=guard_error, error_code="conflict")

    try:
        if not await transition_status(db, tender_id, source, sm.state):
            await db.rollback()
            logger.warning(f"Tender {tender_id} changed concurrently, {trigger} aborted")
            return TenderResult(
                success=False,
                error="Anskaffelsen ble endret samtidig. Last inn på nytt og prøv igjen.",
                error_code="conflict",
            )
        add_history(db, tender_id, action, now, actor.id, actor.display_name, note)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error applying {trigger} to tender {tender_id}: {str(e)}")
        return upstream_failure()

    logger.info(f"Tender {tender_id}: {source} -> {sm.state} ({trigger}) by {actor.id}")
    return tender_result(await get_tender_by_id(db, tender_id))


async def publish_tender(db: AsyncSession, tender_id: str, actor: Actor,
                         now: Optional[datetime] = None) -> TenderResult:
    if not actor.is_sender:
        return forbidden()
    result = await _apply_transition(db, tender_id, "publish", actor, now=now, validate=True)
    if result.success:
        tender = await get_tender_by_id(db, tender_id)
        for invitation in tender.invited_suppliers:
            await notify_tender_invitation(tender, invitation.company_name, invitation.email)
    return result


async def close_tender(db: AsyncSession, tender_id: str, actor: Actor,
                       now: Optional[datetime] = None) -> TenderResult:
    if not actor.is_sender:
        return forbidden()
    return await _apply_transition(db, tender_id, "close", actor, now=now)


async def reopen_tender(db: AsyncSession, tender_id: str, actor: Actor,
                        now: Optional[datetime] = None) -> TenderResult:
    """closed -> open. The deadline is kept as is."""
    if not actor.is_sender:
        return forbidden()
    return await _apply_transition(db, tender_id, "reopen", actor, now=now)


async def close_expired_tenders(db: AsyncSession, owner_id: Optional[str] = None,
                                now: Optional[datetime] = None) -> ExpirySweepResult:
    """Closes open tenders whose deadline has passed. Safe to run repeatedly or concurrently."""
    now = ensure_aware(now) or utcnow()
    result = ExpirySweepResult()
    try:
        expired_ids = await list_expired_open_tenders(db, now, created_by=owner_id)
    except SQLAlchemyError as e:
        logger.error(f"Error listing expired tenders for owner {owner_id}: {str(e)}")
        result.errors.append(SweepError(error=UPDATE_FAILED))
        return result

    for tender_id in expired_ids:
        transition = await _apply_transition(db, tender_id, "expire", SYSTEM_ACTOR, now=now)
        if transition.success:
            result.closed += 1
        elif transition.error_code in ("conflict", "not_found"):
            # Уже закрыт или удалён другим запросом
            logger.info(f"Tender {tender_id} skipped by expiry sweep: {transition.error}")
        else:
            result.errors.append(SweepError(tender_id=tender_id, error=transition.error))

    logger.info(f"Expiry sweep for owner {owner_id}: closed {result.closed}, errors {len(result.errors)}")
    return result


async def send_deadline_reminders(db: AsyncSession, owner_id: Optional[str] = None, now: Optional[datetime] = None,
                                  reminder_days: Optional[List[int]] = None) -> DeadlineReminderSweepResult:
    """Reminds about open tenders whose deadline is a configured number of calendar days away.

    Only invited suppliers without a bid are counted as pending; a tender where
    everyone has bid gets no reminder. Meant to run once a day.
    """
    now = ensure_aware(now) or utcnow()
    days = set(settings.DEADLINE_REMINDER_DAYS if reminder_days is None else reminder_days)
    result = DeadlineReminderSweepResult()
    if not days:
        return result

    try:
        tenders = await list_open_tenders_due(db, now, now + timedelta(days=max(days) + 1), created_by=owner_id)
    except SQLAlchemyError as e:
        logger.error(f"Error listing tenders due for reminders, owner {owner_id}: {str(e)}")
        result.errors.append(SweepError(error="Kunne ikke hente anskaffelser med frist"))
        return result

    for tender in tenders:
        result.checked += 1
        days_left = (ensure_aware(tender.deadline).date() - now.date()).days
        if days_left not in days:
            continue
        bidders = {bid.supplier_id for bid in tender.bids}
        pending = [
            invitation.supplier_id or normalize_email(invitation.email)
            for invitation in tender.invited_suppliers
            if not (invitation.supplier_id and invitation.supplier_id in bidders)
        ]
        pending = [recipient for recipient in pending if recipient]
        if not pending:
            continue
        await notify_deadline_reminder(tender, days_left, len(pending))
        result.reminders.append(
            DeadlineReminder(tender_id=tender.id, days_until_deadline=days_left, pending_suppliers=pending)
        )

    logger.info(f"Deadline reminders for owner {owner_id}: checked {result.checked}, sent {len(result.reminders)}")
    return result


async def delete_tender(db: AsyncSession, tender_id: str, actor: Actor) -> TenderResult:
    if not actor.is_sender:
        return forbidden()
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()
    if await count_bids(db, tender_id):
        return TenderResult(
            success=False,
            error="Anskaffelsen har mottatt tilbud og kan ikke slettes",
            error_code="conflict",
        )

    paths = {doc.storage_path for doc in tender.documents if doc.storage_path}
    try:
        versions = await get_versions_by_context(db, "tender", tender_id)
        paths.update(v.storage_path for v in versions if v.storage_path)
        await delete_versions_by_context(db, "tender", tender_id)
        await delete_tender_row(db, tender_id)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error deleting tender {tender_id}: {str(e)}")
        return upstream_failure("Kunne ikke slette Anskaffelse. Prøv igjen.")

    for path in sorted(paths):
        try:
            await delete_file(path)
        except StorageError:
            logger.warning(f"Orphaned blob {path} left after deleting tender {tender_id}")

    logger.info(f"Tender {tender_id} deleted by {actor.id}")
    return TenderResult(success=True)


async def add_supplier_invitation(db: AsyncSession, tender_id: str, invitation: InvitationCreate,
                                  actor: Actor, now: Optional[datetime] = None) -> TenderResult:
    if not actor.is_sender:
        return forbidden()
    if not invitation.supplier_id and not normalize_email(invitation.email):
        return TenderResult(success=False, error="E-post eller leverandør er påkrevd", error_code="validation",
                            errors={"email": "E-post er påkrevd"})
    now = ensure_aware(now) or utcnow()
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()
    if tender.status == "awarded":
        return TenderResult(success=False, error="Anskaffelsen er allerede tildelt", error_code="conflict")

    email = normalize_email(invitation.email)
    existing = next(
        (inv for inv in tender.invited_suppliers
         if (invitation.supplier_id and inv.supplier_id == invitation.supplier_id)
         or (email and normalize_email(inv.email) == email)),
        None,
    )
    if existing:
        existing.supplier_id = invitation.supplier_id or existing.supplier_id
        existing.company_id = invitation.company_id or existing.company_id
        existing.company_name = invitation.company_name or existing.company_name
        existing.org_number = invitation.org_number or existing.org_number
        existing.email = invitation.email or existing.email
        existing.invited_at = now
        existing.status = "invited"
        existing.viewed_at = None
    else:
        db.add(InvitedSupplierModel(
            tender_id=tender_id,
            supplier_id=invitation.supplier_id,
            company_id=invitation.company_id,
            company_name=invitation.company_name,
            org_number=invitation.org_number,
            email=invitation.email,
            invited_at=now,
            status="invited",
        ))

    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error inviting supplier to tender {tender_id}: {str(e)}")
        return upstream_failure("Kunne ikke invitere leverandør. Prøv igjen.")

    tender = await get_tender_by_id(db, tender_id)
    if not existing and tender.status != "draft":
        await notify_tender_invitation(tender, invitation.company_name, invitation.email)
    return tender_result(tender)


async def mark_invitation_viewed(db: AsyncSession, tender_id: str, actor: Actor,
                                 now: Optional[datetime] = None) -> TenderResult:
    now = ensure_aware(now) or utcnow()
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()
    email = normalize_email(actor.email)
    for invitation in tender.invited_suppliers:
        matches = invitation.supplier_id == actor.id or (email and normalize_email(invitation.email) == email)
        if matches and invitation.status == "invited":
            invitation.status = "viewed"
            invitation.viewed_at = now
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error marking invitation viewed on tender {tender_id}: {str(e)}")
        return upstream_failure()
    return tender_result(await get_tender_by_id(db, tender_id))


async def add_question(db: AsyncSession, tender_id: str, question: str, actor: Actor,
                       now: Optional[datetime] = None) -> TenderResult:
    now = ensure_aware(now) or utcnow()
    if not (question or "").strip():
        return TenderResult(success=False, error="Spørsmål er påkrevd", error_code="validation",
                            errors={"question": "Spørsmål er påkrevd"})
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()
    if tender.status == "draft":
        return TenderResult(success=False, error=DRAFT_NO_QA, error_code="conflict")
    question_deadline = ensure_aware(tender.question_deadline)
    if question_deadline and now > question_deadline:
        return TenderResult(success=False, error="Fristen for å stille spørsmål har gått ut", error_code="conflict")

    db.add(TenderQuestion(
        id=new_id("qa"),
        tender_id=tender_id,
        question=question.strip(),
        asked_by=actor.id,
        asked_by_company=actor.company_name or "",
        asked_at=now,
        answer="",
    ))
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error adding question to tender {tender_id}: {str(e)}")
        return upstream_failure("Kunne ikke legge til spørsmål. Prøv igjen.")

    tender = await get_tender_by_id(db, tender_id)
    await notify_question(tender, f"Nytt spørsmål fra {actor.company_name or actor.display_name}")
    return tender_result(tender)


async def answer_question(db: AsyncSession, tender_id: str, question_id: str, answer: str, actor: Actor,
                          now: Optional[datetime] = None) -> TenderResult:
    if not actor.is_sender:
        return forbidden()
    now = ensure_aware(now) or utcnow()
    if not (answer or "").strip():
        return TenderResult(success=False, error="Svar er påkrevd", error_code="validation",
                            errors={"answer": "Svar er påkrevd"})
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()
    if tender.status == "draft":
        return TenderResult(
            success=False,
            error="Du kan ikke besvare spørsmål før Anskaffelsen er publisert. Endre status til 'Åpen' først.",
            error_code="conflict",
        )
    question = await get_question(db, tender_id, question_id)
    if not question:
        return TenderResult(success=False, error="Spørsmål ikke funnet", error_code="not_found")

    question.answer = answer.strip()
    question.answered_by = actor.id
    question.answered_at = now
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error answering question {question_id} on tender {tender_id}: {str(e)}")
        return upstream_failure("Kunne ikke besvare spørsmål. Prøv igjen.")

    tender = await get_tender_by_id(db, tender_id)
    await notify_question(tender, "Spørsmål besvart")
    return tender_result(tender)


async def _save_document_metadata(db: AsyncSession, tender_id: str, document_id: str, version) -> None:
    """Points the tender document at the given version. The caller commits."""
    document = await get_tender_document(db, tender_id, document_id)
    if document is None:
        document = TenderDocumentModel(id=document_id, tender_id=tender_id)
        db.add(document)
    document.name = version.name
    document.type = version.type
    document.size = version.size
    document.url = version.url
    document.storage_path = version.storage_path
    document.uploaded_at = version.uploaded_at
    document.uploaded_by = version.uploaded_by
    await db.flush()


async def _commit_document(db: AsyncSession, tender_id: str, document_id: str, version) -> bool:
    """Version row and tender metadata are committed together or not at all."""
    try:
        await _save_document_metadata(db, tender_id, document_id, version)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error saving document {document_id} for tender {tender_id}: {str(e)}")
        return False
    return True


async def add_documents_to_tender(db: AsyncSession, tender_id: str, files: List[UploadedFile],
                                  actor: Actor) -> TenderResult:
    """Uploads files; a name already attached to the tender becomes a new version of that document."""
    if not actor.is_sender:
        return forbidden()
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()

    for file in files:
        path = get_tender_document_path(tender_id, file.name)
        try:
            stored = await upload_file(file.content, path, file.name, file.content_type)
        except StorageError as e:
            return upstream_failure(str(e))

        data = DocumentData(
            name=file.name,
            url=stored.url,
            storage_path=stored.path,
            size=stored.size,
            type=stored.type,
        )
        existing = await get_tender_document_by_name(db, tender_id, file.name)
        if existing:
            document_id, reason = existing.id, "Dokument oppdatert"
        else:
            document_id, reason = new_id("doc"), "Dokument opprettet"

        version = await create_version(db, document_id, data, actor, "tender", tender_id, reason, commit=False)
        if not version.success:
            await _discard_document_blob(stored.path)
            return TenderResult(success=False, error=version.error, error_code=version.error_code)

        if not await _commit_document(db, tender_id, document_id, version.version):
            await _discard_document_blob(stored.path)
            return upstream_failure("Kunne ikke legge til dokumenter. Prøv igjen.")

        logger.info(f"Document {file.name} stored as version {version.version.version_number} of {document_id}")

    return tender_result(await get_tender_by_id(db, tender_id))


async def _discard_document_blob(path: str) -> None:
    try:
        await delete_file(path)
    except StorageError:
        logger.warning(f"Orphaned blob {path} left after a failed document upload")


async def remove_document_from_tender(db: AsyncSession, tender_id: str, document_id: str,
                                      actor: Actor) -> TenderResult:
    """Removes the document metadata, then the blob. Version history is kept but can no longer be restored."""
    if not actor.is_sender:
        return forbidden()
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()
    document = await get_tender_document(db, tender_id, document_id)
    if not document:
        return TenderResult(success=False, error=DOCUMENT_NOT_FOUND, error_code="not_found")

    storage_path = document.storage_path
    try:
        await db.delete(document)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error removing document {document_id} from tender {tender_id}: {str(e)}")
        return upstream_failure("Kunne ikke fjerne dokument. Prøv igjen.")

    if storage_path:
        try:
            await delete_file(storage_path)
        except StorageError:
            logger.warning(f"Orphaned blob {storage_path} left after removing document {document_id}")

    return tender_result(await get_tender_by_id(db, tender_id))


async def restore_tender_document(db: AsyncSession, tender_id: str, document_id: str, version_number: int,
                                  actor: Actor) -> TenderResult:
    """Restores a version of a document that is still attached to this tender."""
    if not actor.is_sender:
        return forbidden()
    tender = await get_tender_by_id(db, tender_id)
    if not tender:
        return not_found()
    # Удалённый документ не восстанавливается: его blob уже стёрт
    if not await get_tender_document(db, tender_id, document_id):
        logger.warning(f"Document {document_id} is not attached to tender {tender_id}")
        return TenderResult(success=False, error=DOCUMENT_NOT_FOUND, error_code="not_found")

    version = await restore_version(db, document_id, version_number, actor, "tender", tender_id, commit=False)
    if not version.success:
        return TenderResult(success=False, error=version.error, error_code=version.error_code)

    if not await _commit_document(db, tender_id, document_id, version.version):
        return upstream_failure("Kunne ikke gjenopprette dokument. Prøv igjen.")

    logger.info(f"Document {document_id} restored to version {version_number} as {version.version.version_number}")
    return tender_result(await get_tender_by_id(db, tender_id))
