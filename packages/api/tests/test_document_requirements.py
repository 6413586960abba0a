# This project was developed with assistance from AI tools.
"""Tests for the required-document table."""

import pytest
from db.enums import ActorType, DocumentCategory

from src.services.document_requirements import (
    DOCUMENT_LABELS,
    DOCUMENT_REQUIREMENTS,
    get_document_requirements,
    get_required_documents,
    missing_documents,
)
from src.services.variants import enumerate_variants, resolve_variant

C = DocumentCategory


def test_mexican_tenant_requirements():
    variant = resolve_variant(ActorType.TENANT, {})
    assert get_required_documents(variant) == [
        C.IDENTIFICATION,
        C.INCOME_PROOF,
        C.ADDRESS_PROOF,
        C.BANK_STATEMENT,
    ]


def test_foreign_individuals_need_immigration_document():
    variant = resolve_variant(ActorType.LANDLORD, {"nationality": "FOREIGN"})
    assert C.IMMIGRATION_DOCUMENT in get_required_documents(variant)


def test_company_tenant_address_proof_is_optional():
    variant = resolve_variant(ActorType.TENANT, {"entity_type": "COMPANY"})
    rows = {row.category: row.required for row in get_document_requirements(variant)}
    assert rows[C.ADDRESS_PROOF] is False
    assert rows[C.COMPANY_CONSTITUTION] is True
    assert C.INCOME_PROOF not in rows


def test_joint_obligor_income_and_property_sets_are_exclusive():
    income = resolve_variant(ActorType.JOINT_OBLIGOR, {"guarantee_method": "income"})
    prop = resolve_variant(ActorType.JOINT_OBLIGOR, {"guarantee_method": "property"})
    assert C.INCOME_PROOF in get_required_documents(income)
    assert C.PROPERTY_DEED not in get_required_documents(income)
    assert C.PROPERTY_DEED in get_required_documents(prop)
    assert C.INCOME_PROOF not in get_required_documents(prop)


def test_joint_obligor_without_method_needs_no_guarantee_documents():
    variant = resolve_variant(ActorType.JOINT_OBLIGOR, {})
    required = get_required_documents(variant)
    assert C.INCOME_PROOF not in required
    assert C.PROPERTY_DEED not in required


def test_aval_property_registry_is_optional():
    variant = resolve_variant(ActorType.AVAL, {})
    rows = {row.category: row.required for row in get_document_requirements(variant)}
    assert rows[C.PROPERTY_DEED] is True
    assert rows[C.PROPERTY_REGISTRY] is False


def test_missing_documents_in_table_order():
    variant = resolve_variant(ActorType.TENANT, {})
    assert missing_documents(variant, [C.INCOME_PROOF, C.OTHER]) == [
        C.IDENTIFICATION,
        C.ADDRESS_PROOF,
        C.BANK_STATEMENT,
    ]


@pytest.mark.parametrize("actor_type", list(ActorType))
def test_every_variant_requires_something(actor_type):
    assert set(DOCUMENT_REQUIREMENTS[actor_type]) == {False, True}
    for variant in enumerate_variants(actor_type):
        assert get_required_documents(variant)


def test_every_category_has_a_label():
    assert set(DOCUMENT_LABELS) == set(DocumentCategory)
