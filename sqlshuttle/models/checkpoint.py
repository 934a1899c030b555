"""Checkpoint model.

A checkpoint is the persisted resume marker of an import (or export) run:
the byte offset of the last committed statement boundary plus counters.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field as PydanticField


class Checkpoint(BaseModel):
    """Resume state of a run.

    ``position`` never moves backwards and only ever holds an offset whose
    work has been committed at the target; :meth:`record_commit` is the one
    place that advances it.
    """

    file: str = PydanticField(
        "",
        description="Source identifier (SQL file path for imports, output path for exports)",
    )

    position: int = PydanticField(
        0,
        description="Byte offset of the last committed statement boundary",
        ge=0,
    )

    statements_executed: int = PydanticField(
        0,
        description="Statements processed up to position",
        ge=0,
    )

    last_statement_hash: str = PydanticField(
        "",
        description="Fingerprint of the last statement before position",
    )

    started_at: datetime = PydanticField(
        default_factory=datetime.now,
        description="When the run that owns this checkpoint started",
    )

    updated_at: datetime = PydanticField(
        default_factory=datetime.now,
        description="Last time the checkpoint was persisted",
    )

    completed_tables: list[str] = PydanticField(
        default_factory=list,
        description="Tables fully written (export runs only)",
    )

    model_config = {"extra": "forbid"}

    @classmethod
    def fresh(cls, file: str = "") -> Checkpoint:
        """Zero state for a new run."""
        return cls(file=file)

    @property
    def is_fresh(self) -> bool:
        """True when nothing has been committed yet."""
        return self.position == 0 and self.statements_executed == 0 and not self.completed_tables

    def record_commit(
        self,
        position: int,
        statements_executed: int,
        last_statement_hash: Optional[str] = None,
    ) -> None:
        """Advance the checkpoint to a newly committed boundary.

        Args:
            position: Boundary offset that is now durably committed
            statements_executed: Total statements processed up to position
            last_statement_hash: Fingerprint of the statement ending at position

        Raises:
            ValueError: If position would move backwards
        """
        if position < self.position:
            raise ValueError(
                f"Checkpoint position cannot move backwards ({self.position} -> {position})"
            )
        self.position = position
        self.statements_executed = statements_executed
        if last_statement_hash is not None:
            self.last_statement_hash = last_statement_hash
