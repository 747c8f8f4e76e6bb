from typing import Sequence

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.documents import DocumentVersion, TenderDocument


async def get_versions_by_document_id(db: AsyncSession, document_id: str) -> Sequence[DocumentVersion]:
    result = await db.execute(
        select(DocumentVersion)
        .filter(DocumentVersion.document_id == document_id)
        .order_by(DocumentVersion.version_number.desc())
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def get_head_version(db: AsyncSession, document_id: str) -> DocumentVersion | None:
    result = await db.execute(
        select(DocumentVersion)
        .filter(DocumentVersion.document_id == document_id)
        .order_by(DocumentVersion.version_number.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def insert_head_version(db: AsyncSession, version: DocumentVersion) -> DocumentVersion:
    """Flips ``is_current`` on the previous versions and inserts the new head. Caller commits."""
    await db.execute(
        update(DocumentVersion)
        .where(DocumentVersion.document_id == version.document_id, DocumentVersion.is_current.is_(True))
        .values(is_current=False)
    )
    db.add(version)
    await db.flush()
    return version


async def get_versions_by_context(db: AsyncSession, context: str, context_id: str) -> Sequence[DocumentVersion]:
    result = await db.execute(
        select(DocumentVersion).filter(DocumentVersion.context == context, DocumentVersion.context_id == context_id)
    )
    return result.scalars().all()


async def delete_versions_by_context(db: AsyncSession, context: str, context_id: str) -> None:
    await db.execute(
        delete(DocumentVersion).where(DocumentVersion.context == context, DocumentVersion.context_id == context_id)
    )


async def get_tender_document(db: AsyncSession, tender_id: str, document_id: str) -> TenderDocument | None:
    result = await db.execute(
        select(TenderDocument).filter(TenderDocument.tender_id == tender_id, TenderDocument.id == document_id)
    )
    return result.scalars().first()


async def get_tender_document_by_name(db: AsyncSession, tender_id: str, name: str) -> TenderDocument | None:
    result = await db.execute(
        select(TenderDocument).filter(TenderDocument.tender_id == tender_id, TenderDocument.name == name)
    )
    return result.scalars().first()
