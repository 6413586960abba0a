# This project was developed with assistance from AI tools.
"""Tab state machine for the multi-step actor form.

The state is rebuilt from the persisted ``tabs_completed`` list rather than
guessed from which fields happen to be filled in, so a tab whose fields are
all optional still counts as saved once the actor saved it.
"""

from dataclasses import dataclass, field
from typing import Any

from db.enums import ActorType

from ..core.errors import TabConfigurationError
from .tabs import TabDescriptor, get_tabs
from .variants import resolve_variant


class TabAccessError(ValueError):
    """Navigation to a tab whose predecessor has not been saved."""


@dataclass
class WizardState:
    """Per-actor form progress: which tabs are saved and which one is open."""

    tabs: list[TabDescriptor]
    saved: dict[str, bool] = field(default_factory=dict)
    active_tab: str | None = None
    admin_mode: bool = False

    def __post_init__(self):
        if not self.tabs:
            raise TabConfigurationError("A form needs at least one tab")
        for tab_id in self.saved:
            self._index(tab_id)
        if self.active_tab is None:
            self.active_tab = self.tabs[0].id
        else:
            self._index(self.active_tab)

    @classmethod
    def from_actor(cls, actor_type: ActorType, actor: Any, admin_mode: bool = False) -> "WizardState":
        """Rebuild the state of a stored actor.

        Completed tab ids that no longer apply (e.g. ``employment`` after the
        actor switched to a company) are ignored. The active tab is the first
        unsaved tab that needs saving, or the last tab.
        """
        tabs = get_tabs(actor_type, resolve_variant(actor_type, actor).is_company)
        known = {tab.id for tab in tabs}
        completed = getattr(actor, "tabs_completed", None) or []
        saved = {tab_id: True for tab_id in completed if tab_id in known}
        active = next(
            (tab.id for tab in tabs if tab.needs_save and not saved.get(tab.id)),
            tabs[-1].id,
        )
        return cls(tabs=tabs, saved=saved, active_tab=active, admin_mode=admin_mode)

    def _index(self, tab_id: str) -> int:
        for index, tab in enumerate(self.tabs):
            if tab.id == tab_id:
                return index
        raise TabConfigurationError(f"Unknown tab '{tab_id}'")

    @property
    def last_tab(self) -> TabDescriptor:
        return self.tabs[-1]

    def mark_tab_saved(self, tab_id: str) -> None:
        self._index(tab_id)
        self.saved[tab_id] = True

    def can_access_tab(self, tab_id: str, saved: dict[str, bool] | None = None) -> bool:
        """First tab, admin mode, or the preceding tab is saved (or needs no save)."""
        index = self._index(tab_id)
        if self.admin_mode or index == 0:
            return True
        saved = self.saved if saved is None else saved
        previous = self.tabs[index - 1]
        return not previous.needs_save or bool(saved.get(previous.id))

    def go_to_next_tab(self, fresh_saved: dict[str, bool]) -> str | None:
        """Advance after a save, using the caller's up-to-date saved map.

        Returns the new active tab id, or None when the active tab is the last
        one or the next tab is not accessible yet.
        """
        merged = {**self.saved, **fresh_saved}
        for tab_id in merged:
            self._index(tab_id)
        self.saved = merged

        index = self._index(self.active_tab)
        if index + 1 >= len(self.tabs):
            return None
        candidate = self.tabs[index + 1]
        if not self.can_access_tab(candidate.id):
            return None
        self.active_tab = candidate.id
        return candidate.id

    def navigate(self, tab_id: str) -> None:
        """Open a tab.

        Raises:
            TabAccessError: If the preceding tab still has to be saved.
        """
        if not self.can_access_tab(tab_id):
            previous = self.tabs[self._index(tab_id) - 1]
            raise TabAccessError(f"Save '{previous.label}' before continuing")
        self.active_tab = tab_id

    @property
    def all_tabs_saved(self) -> bool:
        """Every tab that needs saving, apart from the final one, is saved."""
        return all(
            self.saved.get(tab.id)
            for tab in self.tabs[:-1]
            if tab.needs_save
        )

    def progress(self) -> tuple[int, int, int]:
        """``(saved_count, total_needs_save, percent)``."""
        required = [tab for tab in self.tabs if tab.needs_save]
        done = sum(1 for tab in required if self.saved.get(tab.id))
        percent = round(100 * done / len(required)) if required else 100
        return done, len(required), percent
