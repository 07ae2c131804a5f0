"""
Request/response envelopes for the document-store API and the client layer
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from schemas.entities import ChatSession, Course, Progress, User


# ============================================================================
# BASE MODELS
# ============================================================================


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: Any
    detail: Optional[Any] = None
    status_code: int
    request_id: Optional[str] = None
    correlation_id: Optional[str] = None


# ============================================================================
# BULK LOAD / BOOTSTRAP
# ============================================================================


class InitResponse(BaseModel):
    """Wire shape of GET /init"""

    users: List[User] = Field(default_factory=list)
    courses: List[Course] = Field(default_factory=list)
    progress: List[Progress] = Field(default_factory=list)
    chats: List[ChatSession] = Field(default_factory=list)


class BootstrapData(BaseModel):
    """Fixed dataset pushed by POST /seed; also the body of that request"""

    users: List[User] = Field(default_factory=list)
    courses: List[Course] = Field(default_factory=list)
    progress: List[Progress] = Field(default_factory=list)


class SeedResponse(BaseModel):
    success: bool
    message: str


# ============================================================================
# CLIENT-SIDE RESULTS
# ============================================================================


class StoreContents(BaseModel):
    """The four collections as read from one storage tier"""

    users: List[User] = Field(default_factory=list)
    courses: List[Course] = Field(default_factory=list)
    progress: List[Progress] = Field(default_factory=list)
    chatSessions: List[ChatSession] = Field(default_factory=list)


class DataSnapshot(StoreContents):
    """Result of a bulk load plus which tier answered"""

    mode: Literal["online", "offline"] = "offline"


class AuthResult(BaseModel):
    """Business-rule outcome of registration and login; never raised"""

    success: bool
    message: str
    user: Optional[User] = None
