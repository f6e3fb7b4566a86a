"""JSON-file implementation of PreferencesRepository."""

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from application.models import Preferences

logger = logging.getLogger(__name__)


class JsonPreferencesRepository:
    """Stores preferences as a small JSON document on disk.

    A missing file yields defaults; a corrupt one is logged and replaced
    by defaults on the next write.
    """

    def __init__(self, path: Path, defaults: Optional[Preferences] = None) -> None:
        self._path = Path(path).expanduser()
        self._defaults = defaults or Preferences()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Preferences:
        if not self._path.exists():
            return self._defaults
        try:
            return Preferences.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as e:
            logger.warning("Ignoring unreadable preferences at %s: %s", self._path, e)
            return self._defaults

    def update(self, **changes: Any) -> Preferences:
        prefs = Preferences.model_validate({**self.load().model_dump(), **changes})
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(prefs.model_dump_json(indent=2), encoding="utf-8")
        return prefs
