from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

FlowStatus = Literal["challenge", "success", "failure", "reset", "setup_required", "attempted", "skipped"]


class AuthenticateRequest(BaseModel):
    sessionId: str
    userId: str
    username: Optional[str] = None
    # False for conditional executions: users without a credential are skipped.
    required: bool = True


class AuthenticateActionRequest(BaseModel):
    sessionId: str
    userId: str
    username: Optional[str] = None
    action: Optional[str] = None  # "cancel" or empty for a status poll


class SetupActionRequest(BaseModel):
    sessionId: str
    userId: str
    username: Optional[str] = None
    action: Optional[str] = None
    mobileNumber: Optional[str] = None
    countryCode: Optional[str] = None


class FlowResponse(BaseModel):
    status: FlowStatus
    state: str
    page: Optional[str] = None
    error: Optional[str] = None
    field: Optional[str] = None
    flowError: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)


class CredentialView(BaseModel):
    id: str
    type: str
    userLabel: str
    createdDate: int
    mobileNumber: str  # masked


class CredentialList(BaseModel):
    userId: str
    configured: bool
    credentials: List[CredentialView] = Field(default_factory=list)
    requiredActions: List[str] = Field(default_factory=list)
