# This project was developed with assistance from AI tools.
"""Unit tests for shared field types and request schemas."""

import pytest
from db.enums import GuarantorType
from pydantic import ValidationError

from src.core.errors import issues_from_error
from src.schemas.actor import ActorUpdateRequest
from src.schemas.aval import AvalProperty
from src.schemas.policy import ActorSeed, PolicyCreate
from src.schemas.shared import (
    PersonalReferenceIn,
    validate_clabe,
    validate_company_rfc,
    validate_curp,
    validate_person_rfc,
    validate_phone,
    validate_postal_code,
)

from .factories import ADDRESS

# ---------------------------------------------------------------------------
# Identifier checks
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw,normalized",
    [
        ("5512345678", "5512345678"),
        ("55-1234-5678", "5512345678"),
        ("+52 55 1234 5678", "+525512345678"),
        (" 33 1234 5678 ", "3312345678"),
    ],
)
def test_phone_normalized(raw, normalized):
    ok, message, value = validate_phone(raw)
    assert ok, message
    assert value == normalized


@pytest.mark.parametrize("raw", ["12345", "phone", "55 1234 56789 0"])
def test_phone_rejected(raw):
    ok, message, value = validate_phone(raw)
    assert not ok
    assert message == "Invalid phone format"
    assert value is None


def test_curp_upper_cased():
    assert validate_curp(" goma900101mdfrrn09 ") == (True, "", "GOMA900101MDFRRN09")


def test_curp_wrong_length_rejected():
    ok, message, _ = validate_curp("GOMA900101")
    assert not ok
    assert "18 characters" in message


def test_rfc_lengths_differ_for_people_and_companies():
    assert validate_person_rfc("goma900101ab1")[0] is True
    assert validate_person_rfc("ACM010101AB1")[0] is False
    assert validate_company_rfc("acm010101ab1") == (True, "", "ACM010101AB1")
    assert validate_company_rfc("GOMA900101AB1")[0] is False


def test_clabe_ignores_spaces():
    assert validate_clabe("0021 8000 1234 5678 91") == (True, "", "002180001234567891")
    assert validate_clabe("12345")[0] is False


def test_postal_code_five_digits():
    assert validate_postal_code("06700")[0] is True
    assert validate_postal_code("0670")[0] is False


# ---------------------------------------------------------------------------
# Cross-field rules
# ---------------------------------------------------------------------------


def _property(**overrides) -> dict:
    values = {
        "guarantee_property_details": ADDRESS,
        "property_value": "2500000",
        "property_deed_number": "ESC-1",
        "property_registry": "FOLIO-9",
    }
    values.update(overrides)
    return values


def test_married_guarantor_needs_spouse_name():
    with pytest.raises(ValidationError) as exc_info:
        AvalProperty.model_validate(_property(marital_status="married_joint"))
    paths = [issue.path for issue in issues_from_error(exc_info.value)]
    assert paths == ["spouse_name"]


def test_single_guarantor_needs_no_spouse():
    model = AvalProperty.model_validate(_property(marital_status="single"))
    assert model.spouse_name is None


def test_married_guarantor_with_spouse_accepted():
    model = AvalProperty.model_validate(
        _property(marital_status="married_separate", spouse_name="Laura Diaz")
    )
    assert model.spouse_name == "Laura Diaz"


def test_tab_models_reject_unknown_keys():
    with pytest.raises(ValidationError):
        AvalProperty.model_validate(_property(favourite_colour="blue"))


def test_reference_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        PersonalReferenceIn.model_validate(
            {
                "first_name": "Carlos",
                "paternal_last_name": "Ruiz",
                "phone": "5522223333",
                "relationship": "friend",
                "nickname": "Charly",
            }
        )


def test_issues_from_error_prefixes_paths():
    with pytest.raises(ValidationError) as exc_info:
        PersonalReferenceIn.model_validate({"first_name": "Carlos"})
    issues = issues_from_error(exc_info.value, "personal_references")
    assert {issue.path for issue in issues} == {
        "personal_references.paternal_last_name",
        "personal_references.phone",
        "personal_references.relationship",
    }


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


def test_update_request_lifts_metadata_out_of_data():
    request = ActorUpdateRequest.model_validate(
        {"data": {"tab_name": "personal", "partial": False, "first_name": "Ana"}}
    )
    assert request.tab_name == "personal"
    assert request.partial is False
    assert request.data == {"first_name": "Ana"}


def test_update_request_top_level_metadata_wins():
    request = ActorUpdateRequest.model_validate(
        {"tab_name": "employment", "data": {"tab_name": "personal"}}
    )
    assert request.tab_name == "employment"
    assert request.data == {}


def test_company_seed_needs_company_name():
    with pytest.raises(ValidationError, match="company_name is required"):
        ActorSeed(entity_type="COMPANY")


def _create(**overrides) -> dict:
    values = {
        "tenant": {"first_name": "Ana"},
        "landlords": [{"first_name": "Jorge"}],
    }
    values.update(overrides)
    return values


@pytest.mark.parametrize(
    "guarantor_type,joint_obligors,avals",
    [
        (GuarantorType.NONE, [], []),
        (GuarantorType.AVAL, [], [{"first_name": "Rosa"}]),
        (GuarantorType.JOINT_OBLIGOR, [{"first_name": "Rosa"}], []),
        (GuarantorType.BOTH, [{"first_name": "Rosa"}], [{"first_name": "Ivan"}]),
    ],
)
def test_guarantors_match_type(guarantor_type, joint_obligors, avals):
    data = PolicyCreate.model_validate(
        _create(guarantor_type=guarantor_type, joint_obligors=joint_obligors, avals=avals)
    )
    assert data.guarantor_type == guarantor_type


@pytest.mark.parametrize(
    "guarantor_type,joint_obligors,avals",
    [
        (GuarantorType.NONE, [], [{"first_name": "Rosa"}]),
        (GuarantorType.AVAL, [], []),
        (GuarantorType.JOINT_OBLIGOR, [], [{"first_name": "Rosa"}]),
        (GuarantorType.BOTH, [{"first_name": "Rosa"}], []),
    ],
)
def test_guarantors_mismatching_type_rejected(guarantor_type, joint_obligors, avals):
    with pytest.raises(ValidationError):
        PolicyCreate.model_validate(
            _create(guarantor_type=guarantor_type, joint_obligors=joint_obligors, avals=avals)
        )


def test_policy_needs_a_landlord():
    with pytest.raises(ValidationError):
        PolicyCreate.model_validate(_create(landlords=[]))
