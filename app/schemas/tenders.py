from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import date, datetime

from app.schemas.common import OperationResult

ContractStandard = Literal["NS8405", "NS8406", "NS8407"]
PriceStructure = Literal["fastpris", "timepris", "estimat"]
TenderStatus = Literal["draft", "open", "closed", "awarded"]
BidStatus = Literal["submitted", "evaluated", "awarded"]


class NS8405Terms(BaseModel):
    """Totalentreprise, NS 8405."""

    entreprisemodell: Optional[str] = None
    endringsordre_terskel: Optional[float] = None
    dagmulkt_sats: Optional[float] = None
    dagmulkt_startdato: Optional[date] = None
    dagmulkt_maks_prosent: Optional[float] = None
    faktureringsplan: Optional[str] = None
    sikkerhetsstillelse_type: Optional[str] = None
    sikkerhetsstillelse_prosent: Optional[float] = None
    retensjon_prosent: Optional[float] = None
    retensjon_utlopsvilkar: Optional[str] = None
    garantiperiode_ar: Optional[float] = None
    garantiperiode_type: Optional[str] = None


class NS8406Terms(BaseModel):
    """Forenklet utførelsesentreprise, NS 8406."""

    prisformat: Optional[str] = None
    standard_betalingsplan: Optional[str] = None
    reklamasjonstid_maneder: Optional[int] = None
    sikkerhetsstillelse_prosent: Optional[float] = None
    depositum: Optional[str] = None


class NS8407Terms(BaseModel):
    prosjekteringsomfang_prosent: Optional[float] = None
    prosjekteringsansvar: Optional[str] = None
    funksjonskrav: Optional[str] = None
    ytelsesbeskrivelse: Optional[str] = None
    ansvarlig_prosjekterende: Optional[str] = None
    koordinerende_radgivere: Optional[str] = None
    dagmulkt_sats: Optional[float] = None
    dagmulkt_startdato: Optional[date] = None
    sikkerhetsstillelse_prosent: Optional[float] = None
    retensjon_prosent: Optional[float] = None
    garantiperiode_ar: Optional[float] = None


class InvitationCreate(BaseModel):
    supplier_id: Optional[str] = None
    company_id: Optional[str] = None
    company_name: str = ""
    org_number: str = ""
    email: str = ""


class InvitedSupplier(BaseModel):
    supplier_id: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = ""
    org_number: Optional[str] = ""
    email: Optional[str] = ""
    invited_at: datetime
    status: str
    viewed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Question(BaseModel):
    id: str
    question: str
    asked_by: str
    asked_by_company: Optional[str] = ""
    asked_at: datetime
    answer: Optional[str] = ""
    answered_by: Optional[str] = None
    answered_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TenderDocument(BaseModel):
    id: str
    name: str
    type: Optional[str] = None
    size: Optional[int] = None
    url: str
    storage_path: Optional[str] = None
    uploaded_at: datetime
    uploaded_by: Optional[str] = None

    class Config:
        from_attributes = True


class HistoryEntry(BaseModel):
    action: str
    timestamp: datetime
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    note: Optional[str] = None

    class Config:
        from_attributes = True


class BidCreate(BaseModel):
    price: Optional[float] = None
    price_structure: PriceStructure = "fastpris"
    hourly_rate: Optional[float] = None
    estimated_hours: Optional[float] = None
    notes: Optional[str] = None


class Bid(BaseModel):
    id: str
    tender_id: str
    supplier_id: str
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    price: float
    price_structure: str
    hourly_rate: Optional[float] = None
    estimated_hours: Optional[float] = None
    submitted_at: datetime
    documents: List[Dict[str, Any]] = []
    score: Optional[float] = None
    notes: Optional[str] = None
    status: BidStatus

    class Config:
        from_attributes = True


class TenderCreate(BaseModel):
    # Обязательность полей проверяет tender_validator, чтобы вернуть ошибки по каждому полю
    project_id: Optional[str] = None
    title: str = ""
    description: str = ""
    contract_standard: Optional[ContractStandard] = None
    status: Literal["draft", "open"] = "draft"
    price: Optional[float] = None
    publish_date: Optional[datetime] = None
    question_deadline: Optional[datetime] = None
    deadline: Optional[datetime] = None
    entrepriseform: Optional[str] = None
    cpv: Optional[str] = None
    evaluation_criteria: List[Dict[str, Any]] = []
    invited_suppliers: List[InvitationCreate] = []
    ns8405: Optional[NS8405Terms] = None
    ns8406: Optional[NS8406Terms] = None
    ns8407: Optional[NS8407Terms] = None


class TenderUpdate(BaseModel):
    """Explicit patch; unset fields are left untouched. Status is changed only through transitions."""

    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    publish_date: Optional[datetime] = None
    question_deadline: Optional[datetime] = None
    deadline: Optional[datetime] = None
    entrepriseform: Optional[str] = None
    cpv: Optional[str] = None
    evaluation_criteria: Optional[List[Dict[str, Any]]] = None
    ns8405: Optional[NS8405Terms] = None
    ns8406: Optional[NS8406Terms] = None
    ns8407: Optional[NS8407Terms] = None


class TenderDetail(BaseModel):
    id: str
    project_id: str
    title: str
    description: Optional[str] = ""
    contract_standard: str
    status: TenderStatus
    price: Optional[float] = None
    entrepriseform: Optional[str] = None
    cpv: Optional[str] = None
    evaluation_criteria: Optional[List[Dict[str, Any]]] = []
    ns8405: Optional[NS8405Terms] = None
    ns8406: Optional[NS8406Terms] = None
    ns8407: Optional[NS8407Terms] = None
    publish_date: Optional[datetime] = None
    question_deadline: Optional[datetime] = None
    deadline: datetime
    created_at: datetime
    created_by: str
    awarded_bid_id: Optional[str] = None
    awarded_at: Optional[datetime] = None
    standstill_start_date: Optional[datetime] = None
    standstill_end_date: Optional[datetime] = None
    bids: List[Bid] = []
    invited_suppliers: List[InvitedSupplier] = []
    qa: List[Question] = []
    documents: List[TenderDocument] = []
    history: List[HistoryEntry] = []

    class Config:
        from_attributes = True


class TenderShort(BaseModel):
    id: str
    project_id: str
    title: str
    contract_standard: str
    status: TenderStatus
    deadline: datetime
    created_at: datetime
    created_by: str

    class Config:
        from_attributes = True


class TenderResult(OperationResult):
    tender: Optional[TenderDetail] = None


class BidResult(OperationResult):
    bid: Optional[Bid] = None


class SweepError(BaseModel):
    tender_id: Optional[str] = None
    error: str


class ExpirySweepResult(BaseModel):
    closed: int = 0
    errors: List[SweepError] = Field(default_factory=list)


class DeadlineReminder(BaseModel):
    tender_id: str
    days_until_deadline: int
    pending_suppliers: List[str]


class DeadlineReminderSweepResult(BaseModel):
    checked: int = 0
    reminders: List[DeadlineReminder] = Field(default_factory=list)
    errors: List[SweepError] = Field(default_factory=list)


class StandstillStatus(BaseModel):
    tender_id: str
    standstill_start_date: Optional[datetime] = None
    standstill_end_date: Optional[datetime] = None
    ended: bool
    remaining_days: Optional[int] = None


class ContractGate(BaseModel):
    allowed: bool
    error: Optional[str] = None
