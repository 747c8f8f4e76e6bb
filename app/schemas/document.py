from pydantic import BaseModel
from typing import Any, List, Optional
from datetime import datetime

from app.schemas.common import OperationResult


class StoredFile(BaseModel):
    url: str
    path: str
    name: str
    size: int
    type: str


class UploadedFile(BaseModel):
    """A file received from the caller, not yet in blob storage."""

    name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


class DocumentData(BaseModel):
    name: str
    url: Optional[str] = None
    storage_path: Optional[str] = None
    size: Optional[int] = None
    type: Optional[str] = None


class Change(BaseModel):
    type: str
    field: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    description: Optional[str] = None


class DocumentVersion(BaseModel):
    id: int
    document_id: str
    version_number: int
    name: str
    url: Optional[str] = None
    storage_path: Optional[str] = None
    size: Optional[int] = None
    type: Optional[str] = None
    context: str
    context_id: str
    uploaded_by: Optional[str] = None
    uploaded_by_name: Optional[str] = None
    uploaded_at: datetime
    change_reason: Optional[str] = None
    changes: List[Change] = []
    is_current: bool

    class Config:
        from_attributes = True


class Difference(BaseModel):
    field: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    type: str = "modified"


class VersionComparison(BaseModel):
    version1: DocumentVersion
    version2: DocumentVersion
    differences: List[Difference] = []
    has_changes: bool


class ChangeHistoryEntry(BaseModel):
    version: int
    timestamp: datetime
    user: Optional[str] = None
    user_id: Optional[str] = None
    change: Change
    change_reason: Optional[str] = None


class VersionResult(OperationResult):
    version: Optional[DocumentVersion] = None
