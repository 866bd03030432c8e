"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing per-organization journal entry numbers.
    Uses a dedicated counter table with row-level locking
    (``SELECT ... FOR UPDATE`` on PostgreSQL) to guarantee uniqueness and
    ordering under concurrent access.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by JournalStore when it creates an entry.

Invariants enforced:
    - Monotonicity: the locked counter row is the sole source of truth for
      the next value.  The aggregate max-plus-one pattern is never used.
    - Transactional: an increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError on a concurrent first use of a sequence name (handled
      via savepoint rollback and re-read).

Audit relevance:
    Entry numbers define "insertion order" in the general ledger, so two
    entries on the same date always list in the order they were created.
"""

from uuid import UUID

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from fiscal_kernel.db.base import Base
from fiscal_kernel.logging_config import get_logger
from fiscal_kernel.services.base import BaseService

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    """

    __tablename__ = "sequence_counters"

    # Sequence name (e.g., "journal_entry:<organization_id>")
    name: Mapped[str] = mapped_column(
        String(80),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService(BaseService[SequenceCounter]):
    """
    Service for generating transactional sequence numbers.

    Contract:
        Accepts a sequence name and returns the next strictly-monotonic
        integer value.  Flush only; the caller controls commit.

    Guarantees:
        - Returns 1 on first use of a name, then 2, 3, ...
        - ``SELECT ... FOR UPDATE`` serializes concurrent allocations on
          PostgreSQL (SQLite serializes writers on its own).
    """

    JOURNAL_ENTRY = "journal_entry"

    @classmethod
    def journal_sequence_name(cls, organization_id: UUID) -> str:
        return f"{cls.JOURNAL_ENTRY}:{organization_id}"

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Postconditions:
            - Returns an integer > 0, strictly greater than any previously
              returned value for this name.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self.session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self.session.add(counter)
                self.session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self.session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self.session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self.session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
