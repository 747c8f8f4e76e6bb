"""Append-only version chains for uploaded documents.

Only metadata is versioned; the bytes live in blob storage. Every upload or
restore appends a new head, history is never rewritten.
"""
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.core.config import settings
from app.core.logging_config import logger
from app.crud.documents import get_head_version, get_versions_by_document_id, insert_head_version
from app.models.documents import DocumentVersion as DocumentVersionModel
from app.schemas.common import Actor
from app.schemas.document import (
    Change,
    ChangeHistoryEntry,
    Difference,
    DocumentData,
    DocumentVersion,
    VersionComparison,
    VersionResult,
)

NO_REASON = "Ingen begrunnelse"
CREATED_DESCRIPTION = "Dokument opprettet"


def format_file_size(size: Optional[int]) -> str:
    if not size:
        return "0 B"
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def format_size_delta(old_size: Optional[int], new_size: Optional[int]) -> str:
    """Relative change in percent, one decimal; ``N/A`` when there is no previous size."""
    if not old_size:
        return "N/A"
    percent = ((new_size or 0) - old_size) / old_size * 100
    return f"{'+' if percent > 0 else ''}{percent:.1f}%"


def created_change(name: Optional[str]) -> Change:
    return Change(type="created", field="document", old_value=None, new_value=name, description=CREATED_DESCRIPTION)


def calculate_document_changes(previous: DocumentVersion, data: DocumentData) -> List[Change]:
    changes = []

    if previous.name != data.name:
        changes.append(Change(
            type="modified",
            field="name",
            old_value=previous.name,
            new_value=data.name,
            description=f'Navn endret fra "{previous.name}" til "{data.name}"',
        ))

    if previous.size != data.size:
        old_size, new_size = format_file_size(previous.size), format_file_size(data.size)
        changes.append(Change(
            type="modified",
            field="size",
            old_value=old_size,
            new_value=new_size,
            description=f"Størrelse endret fra {old_size} til {new_size} ({format_size_delta(previous.size, data.size)})",
        ))

    if previous.type != data.type:
        changes.append(Change(
            type="modified",
            field="type",
            old_value=previous.type,
            new_value=data.type,
            description=f"Filtype endret fra {previous.type} til {data.type}",
        ))

    if previous.url != data.url or previous.storage_path != data.storage_path:
        changes.append(Change(
            type="replaced",
            field="file",
            old_value=previous.url,
            new_value=data.url,
            description="Fil erstattet med ny versjon",
        ))

    return changes


def compare_versions(version1: DocumentVersion, version2: DocumentVersion) -> VersionComparison:
    differences = []

    if version1.name != version2.name:
        differences.append(Difference(field="name", old_value=version1.name, new_value=version2.name))
    if version1.size != version2.size:
        differences.append(Difference(
            field="size",
            old_value=format_file_size(version1.size),
            new_value=format_file_size(version2.size),
        ))
    if version1.type != version2.type:
        differences.append(Difference(field="type", old_value=version1.type, new_value=version2.type))
    if version1.uploaded_by != version2.uploaded_by:
        differences.append(Difference(
            field="uploaded_by",
            old_value=version1.uploaded_by_name,
            new_value=version2.uploaded_by_name,
        ))
    if version1.change_reason != version2.change_reason:
        differences.append(Difference(
            field="change_reason",
            old_value=version1.change_reason or NO_REASON,
            new_value=version2.change_reason or NO_REASON,
        ))

    return VersionComparison(
        version1=version1,
        version2=version2,
        differences=differences,
        has_changes=len(differences) > 0,
    )


def _degrade(override: Optional[bool]) -> bool:
    if override is not None:
        return override
    return settings.VERSION_READ_FAILURE_MODE == "degrade"


async def get_versions(db: AsyncSession, document_id: str, degrade: Optional[bool] = None) -> List[DocumentVersion]:
    """All versions of a document, newest first. Empty list when the document has none."""
    try:
        rows = await get_versions_by_document_id(db, document_id)
    except SQLAlchemyError as e:
        if not _degrade(degrade):
            raise
        logger.error(f"Error getting versions for document {document_id}: {str(e)}")
        return []
    return [DocumentVersion.model_validate(row) for row in rows]


async def get_current_version(db: AsyncSession, document_id: str,
                              degrade: Optional[bool] = None) -> Optional[DocumentVersion]:
    # Текущая версия = максимальный version_number, флаг is_current только отражает это
    try:
        row = await get_head_version(db, document_id)
    except SQLAlchemyError as e:
        if not _degrade(degrade):
            raise
        logger.error(f"Error getting current version for document {document_id}: {str(e)}")
        return None
    return DocumentVersion.model_validate(row) if row else None


async def get_version_by_number(db: AsyncSession, document_id: str, version_number: int,
                                degrade: Optional[bool] = None) -> Optional[DocumentVersion]:
    versions = await get_versions(db, document_id, degrade=degrade)
    return next((v for v in versions if v.version_number == version_number), None)


async def get_change_history(db: AsyncSession, document_id: str,
                             degrade: Optional[bool] = None) -> List[ChangeHistoryEntry]:
    versions = await get_versions(db, document_id, degrade=degrade)
    history = []

    for index, version in enumerate(versions):
        if version.changes:
            for change in version.changes:
                history.append(ChangeHistoryEntry(
                    version=version.version_number,
                    timestamp=version.uploaded_at,
                    user=version.uploaded_by_name,
                    user_id=version.uploaded_by,
                    change=change,
                    change_reason=version.change_reason,
                ))
        elif index == len(versions) - 1:
            history.append(ChangeHistoryEntry(
                version=version.version_number,
                timestamp=version.uploaded_at,
                user=version.uploaded_by_name,
                user_id=version.uploaded_by,
                change=created_change(version.name),
                change_reason=version.change_reason,
            ))

    return sorted(history, key=lambda entry: (entry.timestamp, entry.version), reverse=True)


async def create_version(
        db: AsyncSession,
        document_id: str,
        document_data: DocumentData,
        actor: Actor,
        context: str,
        context_id: str,
        change_reason: Optional[str] = None,
        commit: bool = True,
) -> VersionResult:
    """Appends a new head version. With ``commit=False`` the row is only flushed and the caller commits."""
    attempts = max(settings.VERSION_WRITE_RETRIES, 1)
    for attempt in range(1, attempts + 1):
        try:
            rows = await get_versions_by_document_id(db, document_id)
            existing = [DocumentVersion.model_validate(row) for row in rows]
            version_number = existing[0].version_number + 1 if existing else 1

            if existing:
                changes = calculate_document_changes(existing[0], document_data)
            else:
                changes = [created_change(document_data.name)]

            version = DocumentVersionModel(
                document_id=document_id,
                version_number=version_number,
                name=document_data.name,
                url=document_data.url,
                storage_path=document_data.storage_path,
                size=document_data.size,
                type=document_data.type,
                context=context,
                context_id=context_id,
                uploaded_by=actor.id,
                uploaded_by_name=actor.name or actor.email,
                uploaded_at=utcnow(),
                change_reason=change_reason,
                changes=[change.model_dump() for change in changes],
                is_current=True,
            )
            await insert_head_version(db, version)
            if commit:
                await db.commit()
        except IntegrityError:
            # Параллельная запись заняла этот номер версии, перечитываем цепочку
            await db.rollback()
            logger.warning(
                f"Version {version_number} of document {document_id} already exists, attempt {attempt}/{attempts}"
            )
            continue
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error creating version for document {document_id}: {str(e)}")
            return VersionResult(
                success=False,
                error="Kunne ikke opprette dokumentversjon. Prøv igjen.",
                error_code="upstream",
            )

        logger.info(f"Created version {version_number} of document {document_id} ({context} {context_id})")
        return VersionResult(success=True, version=DocumentVersion.model_validate(version))

    logger.error(f"Gave up creating a version for document {document_id} after {attempts} attempts")
    return VersionResult(
        success=False,
        error="Kunne ikke opprette dokumentversjon. Prøv igjen.",
        error_code="conflict",
    )


async def restore_version(
        db: AsyncSession,
        document_id: str,
        version_number: int,
        actor: Actor,
        context: str,
        context_id: str,
        commit: bool = True,
) -> VersionResult:
    """Appends a copy of version ``version_number`` as the new head."""
    target = await get_version_by_number(db, document_id, version_number)
    if not target:
        logger.warning(f"Version {version_number} of document {document_id} not found")
        return VersionResult(success=False, error="Versjon ikke funnet", error_code="not_found")

    restored = DocumentData(
        name=target.name,
        url=target.url,
        storage_path=target.storage_path,
        size=target.size,
        type=target.type,
    )
    return await create_version(
        db,
        document_id,
        restored,
        actor,
        context,
        context_id,
        f"Gjenopprettet fra versjon {version_number}",
        commit=commit,
    )
