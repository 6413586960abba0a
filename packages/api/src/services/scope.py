# This project was developed with assistance from AI tools.
"""Shared data scope filtering for service queries.

Centralizes the DataScope -> SQL WHERE logic so that policy and actor
queries apply the same rules. The join_to_policy parameter handles child
entities (actors, documents) that reach Policy through a relationship.
"""

from db import Policy
from sqlalchemy import false

from ..schemas.auth import DataScope, UserContext


def apply_data_scope(stmt, scope: DataScope, user: UserContext, *, join_to_policy=None):
    """Apply data scope filtering to a SQLAlchemy query.

    Args:
        stmt: A SQLAlchemy select statement.
        scope: The caller's DataScope.
        user: The caller's UserContext.
        join_to_policy: ORM relationship attribute to join to reach Policy
            (e.g., ``Actor.policy``). Pass ``None`` when querying Policy
            directly.

    Returns:
        The filtered statement.
    """
    if scope.full_access:
        return stmt
    if join_to_policy is not None:
        stmt = stmt.join(join_to_policy)
    if scope.managed_by:
        return stmt.where(Policy.managed_by == scope.managed_by)
    return stmt.where(false())
