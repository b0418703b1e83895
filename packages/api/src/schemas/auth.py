# This project was developed with assistance from AI tools.
"""Authentication and authorization schemas."""

from db.enums import UserRole
from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Injected by auth middleware into every authenticated request.

    ``user_id`` is the identity provider subject, which is also the
    Profile primary key. ``role`` comes from the Profile, not the token.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    email: str = ""
    name: str = ""


class TokenPayload(BaseModel):
    """Decoded JWT token claims from Keycloak."""

    sub: str
    email: str = ""
    preferred_username: str = ""
    name: str = ""
    realm_access: dict = Field(default_factory=dict)
