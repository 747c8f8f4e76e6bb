from pydantic import BaseModel
from typing import Dict, Optional, Literal

ErrorCode = Literal["validation", "conflict", "not_found", "upstream", "forbidden"]


class Actor(BaseModel):
    """The principal performing an operation. Always passed in explicitly."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Literal["sender", "receiver"] = "receiver"
    company_id: Optional[str] = None
    company_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.id

    @property
    def is_sender(self) -> bool:
        return self.role == "sender"


SYSTEM_ACTOR = Actor(id="system", name="System", role="sender")


class OperationResult(BaseModel):
    success: bool
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    errors: Dict[str, str] = {}
