# This project was developed with assistance from AI tools.
"""Ordered tab configuration for each actor form.

Pure functions only. The order of tabs defines both the portal sequence and
which tab is last (saving it triggers submission).
"""

from collections.abc import Callable
from dataclasses import dataclass

from db.enums import ActorType

from ..core.errors import TabConfigurationError
from ..schemas.forms import TAB_MODELS


def _always(is_company: bool) -> bool:
    return True


def _individual_only(is_company: bool) -> bool:
    return not is_company


@dataclass(frozen=True)
class TabDescriptor:
    """One step of an actor form."""

    id: str
    label: str
    needs_save: bool = True
    applicable_when: Callable[[bool], bool] = _always

    def applies_to(self, is_company: bool) -> bool:
        return self.applicable_when(is_company)


_PERSONAL = TabDescriptor("personal", "Personal information")
_EMPLOYMENT = TabDescriptor("employment", "Employment", applicable_when=_individual_only)
_REFERENCES = TabDescriptor("references", "References")
_DOCUMENTS = TabDescriptor("documents", "Documents", needs_save=False)

TAB_CONFIG: dict[ActorType, tuple[TabDescriptor, ...]] = {
    ActorType.TENANT: (
        _PERSONAL,
        _EMPLOYMENT,
        TabDescriptor("rental", "Rental history", applicable_when=_individual_only),
        _REFERENCES,
        _DOCUMENTS,
    ),
    ActorType.LANDLORD: (
        TabDescriptor("owner-info", "Owner information"),
        TabDescriptor("property-info", "Property information"),
        TabDescriptor("financial-info", "Financial information"),
        _DOCUMENTS,
    ),
    ActorType.AVAL: (
        _PERSONAL,
        _EMPLOYMENT,
        TabDescriptor("property", "Property guarantee"),
        _REFERENCES,
        _DOCUMENTS,
    ),
    ActorType.JOINT_OBLIGOR: (
        _PERSONAL,
        _EMPLOYMENT,
        TabDescriptor("guarantee", "Guarantee"),
        _REFERENCES,
        _DOCUMENTS,
    ),
}

LAST_TABS: dict[ActorType, str] = {
    actor_type: tabs[-1].id for actor_type, tabs in TAB_CONFIG.items()
}


def get_tabs(actor_type: ActorType, is_company: bool) -> list[TabDescriptor]:
    """Applicable tabs for an actor type and entity kind, in portal order."""
    return [tab for tab in TAB_CONFIG[actor_type] if tab.applies_to(is_company)]


def get_tab(actor_type: ActorType, tab_name: str) -> TabDescriptor:
    """Look up a tab by id, regardless of applicability.

    Raises:
        TabConfigurationError: If the actor type has no such tab.
    """
    for tab in TAB_CONFIG[actor_type]:
        if tab.id == tab_name:
            return tab
    raise TabConfigurationError(f"Unknown tab '{tab_name}' for {actor_type.value}")


def is_last_tab(actor_type: ActorType, tab_name: str | None) -> bool:
    return tab_name is not None and LAST_TABS[actor_type] == tab_name


def get_tab_fields(actor_type: ActorType, tab_name: str) -> frozenset[str]:
    """Every field name any variant may send in a save of this tab.

    Raises:
        TabConfigurationError: If the actor type has no such tab.
    """
    get_tab(actor_type, tab_name)
    models = TAB_MODELS[actor_type].get(tab_name, {})
    return frozenset(name for model in models.values() for name in model.model_fields)
