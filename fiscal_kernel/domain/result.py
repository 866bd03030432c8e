"""
OperationResult -- tagged success/failure outcome of a public operation.

Responsibility:
    Carries either a value or a typed FiscalKernelError back to the caller so
    that a request handler can render the failure without catching anything.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.

Invariants enforced:
    - Exactly one of ``value``/``error`` is meaningful: ``error is None`` iff
      the operation succeeded.  A successful result may carry ``None`` as its
      value (e.g. delete).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from fiscal_kernel.exceptions import FiscalKernelError

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Result of a service operation.

    Contract:
        Built through ``ok()`` or ``failed()`` only.

    Guarantees:
        - ``is_success`` is True iff ``error`` is None.
        - ``error_code`` / ``error_category`` mirror the error's class
          attributes, or are None on success.
    """

    value: T | None = None
    error: FiscalKernelError | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> OperationResult[T]:
        return cls(value=value)

    @classmethod
    def failed(cls, error: FiscalKernelError) -> OperationResult[T]:
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None

    @property
    def error_category(self) -> str | None:
        return self.error.category if self.error is not None else None

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
