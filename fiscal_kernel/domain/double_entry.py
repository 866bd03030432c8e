"""
Double-entry rules -- pure validation of proposed journal lines.

Responsibility:
    Decides whether a set of lines may become a journal entry.  Used by
    JournalStore on create and on update, before anything touches the
    session.

Architecture position:
    Kernel > Domain -- pure function, zero I/O.

Invariants enforced:
    - At least two lines.
    - No negative or non-finite (NaN, infinite) amounts.
    - |sum(debit) - sum(credit)| < BALANCE_TOLERANCE.
    - sum(debit) > 0.
    - Every line: exactly one of debit/credit strictly positive, the other
      exactly zero.

Failure modes:
    - TooFewLinesError, InvalidLineError, UnbalancedEntryError,
      ZeroAmountEntryError (all ValidationError), checked in the order above.
"""

from decimal import Decimal
from typing import Sequence

from fiscal_kernel.domain.dtos import JournalLineInput
from fiscal_kernel.exceptions import (
    InvalidLineError,
    TooFewLinesError,
    UnbalancedEntryError,
    ZeroAmountEntryError,
)

MIN_LINES = 2
BALANCE_TOLERANCE = Decimal("0.01")
_ZERO = Decimal("0")


def validate_entry_lines(lines: Sequence[JournalLineInput]) -> tuple[Decimal, Decimal]:
    """
    Validate proposed lines and return ``(total_debit, total_credit)``.

    Preconditions: lines hold Decimal amounts (JournalLineInput coerces).
    Postconditions: on return, every invariant above holds.

    Raises:
        TooFewLinesError, InvalidLineError, UnbalancedEntryError,
        ZeroAmountEntryError.
    """
    if len(lines) < MIN_LINES:
        raise TooFewLinesError(len(lines), MIN_LINES)

    for index, line in enumerate(lines):
        if not (line.debit.is_finite() and line.credit.is_finite()):
            raise InvalidLineError(index, line.debit, line.credit)
        if line.debit < _ZERO or line.credit < _ZERO:
            raise InvalidLineError(index, line.debit, line.credit)

    total_debit = sum((line.debit for line in lines), _ZERO)
    total_credit = sum((line.credit for line in lines), _ZERO)

    # A difference of exactly one cent is already unbalanced.
    if abs(total_debit - total_credit) >= BALANCE_TOLERANCE:
        raise UnbalancedEntryError(total_debit, total_credit)

    if total_debit == _ZERO:
        raise ZeroAmountEntryError()

    for index, line in enumerate(lines):
        one_sided = (line.debit > _ZERO) != (line.credit > _ZERO)
        if not one_sided:
            raise InvalidLineError(index, line.debit, line.credit)

    return total_debit, total_credit
