"""
Session state models.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class SessionStatus(str, Enum):
    """Authentication status exposed to the UI shell."""
    CHECKING = "checking"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class Credential(BaseModel):
    """A personal access token bound to the server it was validated against."""
    
    model_config = ConfigDict(frozen=True)
    
    token: str = Field(min_length=1, repr=False, description="Opaque personal access token")
    endpoint: Optional[str] = Field(
        default=None,
        description="Normalized server endpoint the token belongs to"
    )
    

class Profile(BaseModel):
    """
    Signed-in user profile.
    
    The backend shape is not fixed, so unknown fields are kept as extras.
    """
    
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    
    id: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    email: Optional[str] = None
    full_name: Optional[str] = None
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    
    @property
    def display_name(self) -> Optional[str]:
        if self.full_name:
            return self.full_name
        parts = [p for p in (self.first_name, self.last_name) if p]
        if parts:
            return " ".join(parts)
        return self.email


class Session(BaseModel):
    """
    Immutable snapshot of the authentication session.
    
    ``status`` is AUTHENTICATED exactly when a credential is present.
    """
    
    model_config = ConfigDict(frozen=True)
    
    status: SessionStatus = SessionStatus.CHECKING
    credential: Optional[Credential] = None
    profile: Optional[Profile] = None
    
    @model_validator(mode="after")
    def _check_credential_matches_status(self) -> "Session":
        authenticated = self.status == SessionStatus.AUTHENTICATED
        if authenticated != (self.credential is not None):
            raise ValueError(
                "session must carry a credential exactly when authenticated"
            )
        return self
    
    @property
    def is_authenticated(self) -> bool:
        return self.status == SessionStatus.AUTHENTICATED
