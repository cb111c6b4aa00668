"""File-backed store for the state passed from apply to teardown."""

import json
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from .common.exceptions import StateError
from .common.logging import get_logger
from .models import PersistedState

logger = get_logger(__name__)


class StateStore:
    """Reads and writes one PersistedState record as JSON."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> PersistedState | None:
        """Load the record, or None when nothing was saved.

        Raises:
            StateError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            return None
        try:
            return PersistedState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise StateError(f"Cannot read state file {self.path}: {e}") from e

    def save(self, state: PersistedState) -> None:
        """Atomically replace the record on disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=".wg-routes-", suffix=".json"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.model_dump(mode="json"), f, indent=2)
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

        logger.debug(
            "State saved",
            path=str(self.path),
            interface=state.interface,
            bypass_routes=len(state.bypass_routes),
        )

    def clear(self) -> None:
        """Remove the record if present."""
        try:
            self.path.unlink()
            logger.debug("State cleared", path=str(self.path))
        except FileNotFoundError:
            pass
