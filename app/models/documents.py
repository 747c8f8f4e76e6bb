from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from app.models.base import Base, JSONType, UTCDateTime


class TenderDocument(Base):
    """Metadata of a file attached to a tender; mirrors the head of its version chain."""

    __tablename__ = "tender_documents"

    id = Column(String, primary_key=True)
    tender_id = Column(String, ForeignKey("tenders.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String)
    size = Column(Integer)
    url = Column(String, nullable=False)
    storage_path = Column(String)
    uploaded_at = Column(UTCDateTime, nullable=False)
    uploaded_by = Column(String)

    tender = relationship("Tender", back_populates="documents")


class DocumentVersion(Base):
    __tablename__ = "document_versions"
    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_document_version"),
        Index("ix_document_versions_context", "context", "context_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(String, nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    name = Column(String, nullable=False)
    url = Column(String)
    storage_path = Column(String)
    size = Column(Integer)
    type = Column(String)
    context = Column(String, nullable=False)
    context_id = Column(String, nullable=False)
    uploaded_by = Column(String)
    uploaded_by_name = Column(String)
    uploaded_at = Column(UTCDateTime, nullable=False)
    change_reason = Column(Text)
    changes = Column(JSONType, nullable=False, default=list)
    is_current = Column(Boolean, nullable=False, default=True)
