"""
Typed Exception Hierarchy for the Fiscal Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers render failures to people and to other systems. Generic exceptions
like ValueError force callers to parse message strings, which breaks as soon
as wording changes. Every error in the kernel therefore:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, API-safe)
  3. Has a CATEGORY attribute (validation, state, permission, not_found,
     persistence) so result objects and handlers can branch on it
  4. Carries structured DATA as attributes (not just a message string)

Example - WRONG way to handle errors:
    try:
        store.update_entry(...)
    except Exception as e:
        if "posted" in str(e):  # FRAGILE - message might change
            show_locked_banner()

Example - RIGHT way (what this module enables):
    result = store.update_entry(...)
    if result.error_code == EntryPostedError.code:
        show_locked_banner(result.error.entry_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from FiscalKernelError:

    FiscalKernelError (base)
    |
    +-- ValidationError
    |   +-- TooFewLinesError
    |   +-- InvalidLineError
    |   +-- UnbalancedEntryError
    |   +-- ZeroAmountEntryError
    |   +-- InvalidAccountError
    |   +-- DuplicateAccountCodeError
    |   +-- AccountCycleError
    |   +-- AccountHasChildrenError
    |   +-- InvalidPeriodError
    |
    +-- StateError
    |   +-- EntryPostedError
    |   +-- InvalidFilingTransitionError
    |   +-- FilingLockedError
    |   +-- FilingNotDeletableError
    |
    +-- PermissionDeniedError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- EntryNotFoundError
    |   +-- FilingNotFoundError
    |
    +-- PersistenceError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|-----------------------------------
validation   | TOO_FEW_LINES               | Entry has fewer than two lines
             | INVALID_LINE                | Line is not exactly one-sided
             | UNBALANCED_ENTRY            | Debits != credits (0.01 tolerance)
             | ZERO_AMOUNT_ENTRY           | Entry moves no money
             | INVALID_ACCOUNT             | Line targets a foreign/inactive account
             | DUPLICATE_ACCOUNT_CODE      | Code already used in organization
             | ACCOUNT_CYCLE               | Parent assignment creates a cycle
             | ACCOUNT_HAS_CHILDREN        | Delete refused, account has children
             | INVALID_PERIOD              | Year/month outside the calendar
-------------|-----------------------------|-----------------------------------
state        | ENTRY_POSTED                | Edit/delete of a posted entry
             | INVALID_FILING_TRANSITION   | Transition not in the filing table
             | FILING_LOCKED               | Recompute of a FILED/ACCEPTED filing
             | FILING_NOT_DELETABLE        | Delete outside DRAFT/CALCULATED
-------------|-----------------------------|-----------------------------------
permission   | PERMISSION_DENIED           | Capability check failed
-------------|-----------------------------|-----------------------------------
not_found    | ACCOUNT_NOT_FOUND           | Account id unknown in organization
             | ENTRY_NOT_FOUND             | Journal entry id unknown
             | FILING_NOT_FOUND            | Tax filing id unknown
-------------|-----------------------------|-----------------------------------
persistence  | PERSISTENCE_ERROR           | Underlying store failure (opaque)

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Inherit from Exception, not ValueError. Domain errors are caught as a
   group and must not mix with programming errors.

2. code and category are CLASS attributes. They are static per type and can
   be read without instantiation (ZeroAmountEntryError.code).

3. PermissionDeniedError instead of PermissionError. The builtin name is an
   OSError subclass; shadowing it would make ``except PermissionError``
   ambiguous in callers.

4. PersistenceError messages are opaque. The original database error is
   chained (``raise ... from exc``) and logged, never shown to callers.

===============================================================================
"""

from decimal import Decimal


class FiscalKernelError(Exception):
    """
    Base exception for all fiscal kernel errors.

    All subclasses define a ``code`` class attribute for machine-readable
    identification and inherit a ``category`` from their family.
    """

    code: str = "FISCAL_KERNEL_ERROR"
    category: str = "internal"


# Validation errors


class ValidationError(FiscalKernelError):
    """Malformed or invariant-violating input. Recoverable by fixing input."""

    code: str = "VALIDATION_ERROR"
    category: str = "validation"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class TooFewLinesError(ValidationError):
    """Journal entry has fewer than the minimum number of lines."""

    code: str = "TOO_FEW_LINES"

    def __init__(self, line_count: int, minimum: int = 2):
        self.line_count = line_count
        self.minimum = minimum
        super().__init__(
            f"Journal entry needs at least {minimum} lines, got {line_count}",
            field="lines",
        )


class InvalidLineError(ValidationError):
    """
    A line is not exactly one-sided.

    Exactly one of debit/credit must be strictly positive and the other
    exactly zero. Negative and non-finite amounts are also rejected here.
    """

    code: str = "INVALID_LINE"

    def __init__(self, line_index: int, debit: Decimal, credit: Decimal):
        self.line_index = line_index
        self.debit = debit
        self.credit = credit
        super().__init__(
            f"Line {line_index + 1} must have exactly one positive side "
            f"(debit={debit}, credit={credit})",
            field="lines",
        )


class UnbalancedEntryError(ValidationError):
    """Total debits and total credits differ by the tolerance or more."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: Decimal, credits: Decimal):
        self.debits = debits
        self.credits = credits
        self.difference = debits - credits
        super().__init__(
            f"Entry is unbalanced: debits={debits}, credits={credits}",
            field="lines",
        )


class ZeroAmountEntryError(ValidationError):
    """Entry totals are zero."""

    code: str = "ZERO_AMOUNT_ENTRY"

    def __init__(self):
        super().__init__("Entry total must be greater than zero", field="lines")


class InvalidAccountError(ValidationError):
    """Line references an account outside the organization or inactive."""

    code: str = "INVALID_ACCOUNT"

    def __init__(self, account_id: str, reason: str):
        self.account_id = account_id
        self.reason = reason
        super().__init__(
            f"Account {account_id} cannot receive postings: {reason}",
            field="account_id",
        )


class DuplicateAccountCodeError(ValidationError):
    """Account code is already in use within the organization."""

    code: str = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(
            f"Account code already exists: {account_code}",
            field="code",
        )


class AccountCycleError(ValidationError):
    """Assigning the parent would make the account its own ancestor."""

    code: str = "ACCOUNT_CYCLE"

    def __init__(self, account_id: str, parent_id: str):
        self.account_id = account_id
        self.parent_id = parent_id
        super().__init__(
            f"Account {account_id} cannot be placed under {parent_id}: "
            "parent chain would contain a cycle",
            field="parent_id",
        )


class AccountHasChildrenError(ValidationError):
    """Delete refused because sub-accounts still point at this account."""

    code: str = "ACCOUNT_HAS_CHILDREN"

    def __init__(self, account_id: str, child_count: int):
        self.account_id = account_id
        self.child_count = child_count
        super().__init__(
            f"Account {account_id} has {child_count} sub-account(s); "
            "delete them first"
        )


class InvalidPeriodError(ValidationError):
    """Filing period is outside the calendar."""

    code: str = "INVALID_PERIOD"

    def __init__(self, year: int, month: int | None):
        self.year = year
        self.month = month
        super().__init__(f"Invalid filing period: year={year}, month={month}")


# State errors


class StateError(FiscalKernelError):
    """Operation not permitted in the entity's current lifecycle state."""

    code: str = "STATE_ERROR"
    category: str = "state"


class EntryPostedError(StateError):
    """Posted journal entries cannot be edited or deleted."""

    code: str = "ENTRY_POSTED"

    def __init__(self, entry_id: str, attempted_action: str):
        self.entry_id = entry_id
        self.current_state = "posted"
        self.attempted_action = attempted_action
        super().__init__(
            f"Cannot {attempted_action} journal entry {entry_id}: entry is posted"
        )


class InvalidFilingTransitionError(StateError):
    """Requested filing status is not reachable from the current status."""

    code: str = "INVALID_FILING_TRANSITION"

    def __init__(self, filing_id: str, current_state: str, requested_state: str):
        self.filing_id = filing_id
        self.current_state = current_state
        self.requested_state = requested_state
        super().__init__(
            f"Filing {filing_id} cannot move from {current_state} "
            f"to {requested_state}"
        )


class FilingLockedError(StateError):
    """A submitted filing cannot be recomputed."""

    code: str = "FILING_LOCKED"

    def __init__(self, filing_id: str, current_state: str):
        self.filing_id = filing_id
        self.current_state = current_state
        self.requested_state = "calculated"
        super().__init__(
            f"Filing {filing_id} is {current_state} and cannot be recalculated"
        )


class FilingNotDeletableError(StateError):
    """Filings may only be deleted while draft or calculated."""

    code: str = "FILING_NOT_DELETABLE"

    def __init__(self, filing_id: str, current_state: str):
        self.filing_id = filing_id
        self.current_state = current_state
        super().__init__(
            f"Filing {filing_id} is {current_state}; only draft or "
            "calculated filings can be deleted"
        )


# Permission errors


class PermissionDeniedError(FiscalKernelError):
    """Capability check failed. Raised before any other validation."""

    code: str = "PERMISSION_DENIED"
    category: str = "permission"

    def __init__(self, permission: str, role: str | None, reason: str = ""):
        self.permission = permission
        self.role = role
        self.reason = reason
        super().__init__(
            f"Permission '{permission}' denied for role {role}"
            + (f": {reason}" if reason else "")
        )


# Not-found errors


class NotFoundError(FiscalKernelError):
    """Referenced entity does not exist in the caller's organization."""

    code: str = "NOT_FOUND"
    category: str = "not_found"


class AccountNotFoundError(NotFoundError):
    """Account with given ID was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class EntryNotFoundError(NotFoundError):
    """Journal entry with given ID was not found."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class FilingNotFoundError(NotFoundError):
    """Tax filing with given ID was not found."""

    code: str = "FILING_NOT_FOUND"

    def __init__(self, filing_id: str):
        self.filing_id = filing_id
        super().__init__(f"Tax filing not found: {filing_id}")


# Persistence errors


class PersistenceError(FiscalKernelError):
    """
    Underlying store failure.

    The message is deliberately generic; the store's own error is chained
    as ``__cause__`` and logged by the service that caught it.
    """

    code: str = "PERSISTENCE_ERROR"
    category: str = "persistence"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Storage failure during {operation}")
