# This project was developed with assistance from AI tools.
"""Per-actor-type lookup tables of tab and strict form models."""

from db.enums import ActorType
from pydantic import BaseModel

from . import aval, joint_obligor, landlord, tenant
from .shared import ReferenceLimits

TAB_MODELS: dict[ActorType, dict[str, dict[str, type[BaseModel]]]] = {
    ActorType.TENANT: tenant.TAB_MODELS,
    ActorType.LANDLORD: landlord.TAB_MODELS,
    ActorType.AVAL: aval.TAB_MODELS,
    ActorType.JOINT_OBLIGOR: joint_obligor.TAB_MODELS,
}

STRICT_MODELS: dict[ActorType, dict[str, type[BaseModel]]] = {
    ActorType.TENANT: tenant.STRICT_MODELS,
    ActorType.LANDLORD: landlord.STRICT_MODELS,
    ActorType.AVAL: aval.STRICT_MODELS,
    ActorType.JOINT_OBLIGOR: joint_obligor.STRICT_MODELS,
}

# Landlords carry no references.
REFERENCE_LIMITS: dict[ActorType, ReferenceLimits] = {
    ActorType.TENANT: tenant.REFERENCE_LIMITS,
    ActorType.AVAL: aval.REFERENCE_LIMITS,
    ActorType.JOINT_OBLIGOR: joint_obligor.REFERENCE_LIMITS,
}
