"""Port interface for locally persisted preferences."""

from typing import Any, Protocol

from application.models import Preferences


class PreferencesRepository(Protocol):
    def load(self) -> Preferences:
        """Return stored preferences, or defaults when nothing is stored."""
        ...

    def update(self, **changes: Any) -> Preferences:
        """Apply ``changes`` on top of the stored preferences and persist them."""
        ...
