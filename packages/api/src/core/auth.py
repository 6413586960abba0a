# This project was developed with assistance from AI tools.
"""Pure auth utility functions with no FastAPI or HTTP dependencies.

Used by the session middleware and by services that scope policy queries.
Keeping them separate from ``middleware/auth.py`` avoids pulling
FastAPI/Starlette imports into the service layer.
"""

from db.enums import UserRole

from ..schemas.auth import DataScope

STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.STAFF})


def build_data_scope(role: UserRole, user_id: str) -> DataScope:
    """Build data scope rules based on the user's role."""
    if role in STAFF_ROLES:
        return DataScope(full_access=True)
    if role == UserRole.BROKER:
        return DataScope(managed_by=user_id)
    return DataScope()


def can_skip_validation(role: UserRole) -> bool:
    """Only staff may save or submit actor data without schema checks."""
    return role in STAFF_ROLES
