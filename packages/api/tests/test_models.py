# This project was developed with assistance from AI tools.
"""
Domain model structure tests
"""

import pytest
from db.enums import ActorType, EntityType


def test_policy_relationships():
    """Policy should reach its actors both together and per type."""
    from db import Policy

    rel_names = {r.key for r in Policy.__mapper__.relationships}
    assert {"actors", "tenant", "landlords", "avals", "joint_obligors"} <= rel_names


def test_actor_relationships():
    from db import Actor

    rel_names = {r.key for r in Actor.__mapper__.relationships}
    assert {"policy", "personal_references", "commercial_references", "documents"} <= rel_names


def test_references_are_owned_by_the_actor():
    """Replacing a reference list deletes the old rows."""
    from db import Actor

    for name in ("personal_references", "commercial_references"):
        assert Actor.__mapper__.relationships[name].cascade.delete_orphan


def test_documents_survive_actor_changes():
    from db import Actor

    assert not Actor.__mapper__.relationships["documents"].cascade.delete_orphan


@pytest.mark.parametrize("actor_type", list(ActorType))
def test_actor_types_share_one_table(actor_type):
    from db import ACTOR_MODELS

    model = ACTOR_MODELS[actor_type]
    assert model.__table__.name == "actors"
    assert model.__mapper__.polymorphic_identity == actor_type


def test_is_company():
    from db import Landlord

    assert Landlord(entity_type=EntityType.COMPANY).is_company
    assert not Landlord(entity_type=EntityType.INDIVIDUAL).is_company
