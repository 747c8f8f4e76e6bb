from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.document import ChangeHistoryEntry, DocumentVersion, VersionComparison
from app.services import document_versioning

router = APIRouter()


@router.get("/{document_id}/versions", response_model=List[DocumentVersion])
async def list_versions(document_id: str, db: AsyncSession = Depends(get_db)):
    return await document_versioning.get_versions(db, document_id)


@router.get("/{document_id}/versions/current", response_model=DocumentVersion)
async def current_version(document_id: str, db: AsyncSession = Depends(get_db)):
    version = await document_versioning.get_current_version(db, document_id)
    if not version:
        raise HTTPException(status_code=404, detail="Versjon ikke funnet")
    return version


@router.get("/{document_id}/versions/compare", response_model=VersionComparison)
async def compare(document_id: str, v1: int, v2: int, db: AsyncSession = Depends(get_db)):
    version1 = await document_versioning.get_version_by_number(db, document_id, v1)
    version2 = await document_versioning.get_version_by_number(db, document_id, v2)
    if not version1 or not version2:
        raise HTTPException(status_code=404, detail="Versjon ikke funnet")
    return document_versioning.compare_versions(version1, version2)


@router.get("/{document_id}/versions/{version_number}", response_model=DocumentVersion)
async def version_by_number(document_id: str, version_number: int, db: AsyncSession = Depends(get_db)):
    version = await document_versioning.get_version_by_number(db, document_id, version_number)
    if not version:
        raise HTTPException(status_code=404, detail="Versjon ikke funnet")
    return version


@router.get("/{document_id}/history", response_model=List[ChangeHistoryEntry])
async def change_history(document_id: str, db: AsyncSession = Depends(get_db)):
    return await document_versioning.get_change_history(db, document_id)
