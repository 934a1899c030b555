"""Durable checkpoint persistence.

The checkpoint is a small JSON document. Every save replaces it atomically
(temporary sibling, fsync, rename), so a reader sees either the previous or
the new state, never a torn write.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Union

from pydantic import ValidationError as PydanticValidationError

from sqlshuttle.exceptions import CorruptCheckpointError
from sqlshuttle.models.checkpoint import Checkpoint

logger = logging.getLogger(__name__)


class CheckpointStore:
    """Load, save and clear the checkpoint of one run.

    Examples:
        >>> store = CheckpointStore("/tmp/shop.checkpoint.json")
        >>> state = store.load()          # fresh state if absent
        >>> state.record_commit(4096, 120)
        >>> store.save(state)
        >>> store.clear()                 # after a fully successful run
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Checkpoint:
        """Read the persisted state.

        Returns:
            Persisted Checkpoint, or a fresh zero state if none exists

        Raises:
            CorruptCheckpointError: If the file cannot be read or validated
        """
        if not self.exists():
            return Checkpoint.fresh()

        try:
            payload = self.path.read_text(encoding="utf-8")
            state = Checkpoint.model_validate_json(payload)
        except (OSError, UnicodeDecodeError, PydanticValidationError) as e:
            raise CorruptCheckpointError(f"Cannot read checkpoint {self.path}: {e}") from e

        logger.info(
            "Loaded checkpoint %s: position %d, %d statements",
            self.path,
            state.position,
            state.statements_executed,
        )
        return state

    def save(self, state: Checkpoint) -> None:
        """Persist state, replacing the previous checkpoint atomically."""
        state.updated_at = datetime.now()
        self.path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(state.model_dump_json(indent=2))
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)

        logger.debug("Saved checkpoint %s at position %d", self.path, state.position)

    def clear(self) -> bool:
        """Remove the checkpoint.

        Returns:
            True if a checkpoint file was removed
        """
        if not self.exists():
            return False
        self.path.unlink()
        logger.info("Cleared checkpoint %s", self.path)
        return True

    def __repr__(self) -> str:
        return f"CheckpointStore(path={str(self.path)!r})"
