from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base, JSONType, UTCDateTime
from app.models.documents import TenderDocument


class Tender(Base):
    __tablename__ = "tenders"

    id = Column(String, primary_key=True, index=True)
    project_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, default="")
    contract_standard = Column(String, nullable=False)
    status = Column(String, nullable=False, default="draft", index=True)
    price = Column(Numeric(15, 2, asdecimal=False))
    entrepriseform = Column(String)
    cpv = Column(String)
    evaluation_criteria = Column(JSONType, default=list)
    # Только блок, соответствующий contract_standard
    ns8405 = Column(JSONType)
    ns8406 = Column(JSONType)
    ns8407 = Column(JSONType)
    publish_date = Column(UTCDateTime)
    question_deadline = Column(UTCDateTime)
    deadline = Column(UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, nullable=False)
    created_by = Column(String, nullable=False, index=True)
    awarded_bid_id = Column(String)
    awarded_at = Column(UTCDateTime)
    standstill_start_date = Column(UTCDateTime)
    standstill_end_date = Column(UTCDateTime)

    bids = relationship("Bid", back_populates="tender", cascade="all, delete-orphan", order_by="Bid.submitted_at")
    invited_suppliers = relationship(
        "InvitedSupplier", back_populates="tender", cascade="all, delete-orphan", order_by="InvitedSupplier.id"
    )
    qa = relationship(
        "TenderQuestion", back_populates="tender", cascade="all, delete-orphan", order_by="TenderQuestion.asked_at"
    )
    documents = relationship(
        TenderDocument, back_populates="tender", cascade="all, delete-orphan", order_by=TenderDocument.uploaded_at
    )
    history = relationship(
        "TenderHistory", back_populates="tender", cascade="all, delete-orphan", order_by="TenderHistory.id"
    )


class Bid(Base):
    __tablename__ = "bids"

    id = Column(String, primary_key=True)
    tender_id = Column(String, ForeignKey("tenders.id", ondelete="CASCADE"), nullable=False, index=True)
    supplier_id = Column(String, nullable=False)
    company_id = Column(String)
    company_name = Column(String)
    price = Column(Numeric(15, 2, asdecimal=False), nullable=False)
    price_structure = Column(String, nullable=False, default="fastpris")
    hourly_rate = Column(Numeric(15, 2, asdecimal=False))
    estimated_hours = Column(Numeric(15, 2, asdecimal=False))
    submitted_at = Column(UTCDateTime, nullable=False)
    documents = Column(JSONType, default=list)
    score = Column(Numeric(7, 2, asdecimal=False))
    notes = Column(Text)
    status = Column(String, nullable=False, default="submitted")

    tender = relationship("Tender", back_populates="bids")


class InvitedSupplier(Base):
    __tablename__ = "invited_suppliers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tender_id = Column(String, ForeignKey("tenders.id", ondelete="CASCADE"), nullable=False, index=True)
    supplier_id = Column(String, index=True)
    company_id = Column(String)
    company_name = Column(String, default="")
    org_number = Column(String, default="")
    email = Column(String, default="")
    invited_at = Column(UTCDateTime, nullable=False)
    status = Column(String, nullable=False, default="invited")
    viewed_at = Column(UTCDateTime)

    tender = relationship("Tender", back_populates="invited_suppliers")


class TenderQuestion(Base):
    __tablename__ = "tender_questions"

    id = Column(String, primary_key=True)
    tender_id = Column(String, ForeignKey("tenders.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    asked_by = Column(String, nullable=False)
    asked_by_company = Column(String, default="")
    asked_at = Column(UTCDateTime, nullable=False)
    answer = Column(Text, default="")
    answered_by = Column(String)
    answered_at = Column(UTCDateTime)

    tender = relationship("Tender", back_populates="qa")


class TenderHistory(Base):
    """Append-only log of status transitions and awards."""

    __tablename__ = "tender_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tender_id = Column(String, ForeignKey("tenders.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String, nullable=False)
    timestamp = Column(UTCDateTime, nullable=False)
    actor_id = Column(String)
    actor_name = Column(String)
    note = Column(Text)

    tender = relationship("Tender", back_populates="history")
