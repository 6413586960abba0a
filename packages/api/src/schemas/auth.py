# This project was developed with assistance from AI tools.
"""Authentication and authorization schemas."""

from db.enums import ActorType, UserRole
from pydantic import BaseModel, ConfigDict, Field


class DataScope(BaseModel):
    """Data visibility rules injected by RBAC middleware."""

    managed_by: str | None = None
    full_access: bool = False


class UserContext(BaseModel):
    """Injected by auth middleware into every authenticated request."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    email: str
    name: str
    data_scope: DataScope = Field(default_factory=DataScope)


class TokenPayload(BaseModel):
    """Decoded JWT token claims from Keycloak."""

    sub: str
    email: str = ""
    preferred_username: str = ""
    name: str = ""
    realm_access: dict = Field(default_factory=dict)


class ActorAuthContext(BaseModel):
    """Who is acting on an actor record, and with which privileges.

    ``auth_type`` is ``session`` for staff/broker users and ``token`` for the
    actor itself using its portal link.
    """

    model_config = ConfigDict(frozen=True)

    auth_type: str
    actor_type: ActorType
    actor_id: int
    can_edit: bool
    skip_validation_allowed: bool = False
    user: UserContext | None = None

    @property
    def performed_by(self) -> str:
        if self.user is not None:
            return self.user.user_id
        return f"actor:{self.actor_type.value}:{self.actor_id}"

    @property
    def role_label(self) -> str:
        if self.user is not None:
            return self.user.role.value
        return self.actor_type.value
