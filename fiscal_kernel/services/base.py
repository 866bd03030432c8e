"""
BaseService -- abstract bases for kernel services.

Responsibility:
    ``BaseService`` carries the session for flush-only helpers such as
    SequenceService.  ``TransactionalService`` is the base for every public
    operation surface (accounts, journal, ledger, filings): it checks the
    capability, runs the work, commits or rolls back, and turns typed errors
    into ``OperationResult`` failures.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Permission is checked before any other validation or any read.
    - A failed operation leaves no partial state (rollback when
      ``auto_commit`` is True).
    - Store failures are surfaced as an opaque ``PersistenceError``; the
      driver error is logged and chained, never shown to callers.
    - Audit failure never fails the audited operation.
    - Cached read views of an organization are dropped when a mutation
      runs and again once its transaction commits or rolls back.

Failure modes:
    - Non-kernel, non-SQLAlchemy exceptions propagate after rollback.  Those
      are programming errors, not user-facing outcomes.

Audit relevance:
    Every committed mutation calls ``_audit`` after flush and before commit.
"""

from abc import ABC
from typing import Any, Callable, Generic, Mapping, TypeVar

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fiscal_kernel.db.base import Base
from fiscal_kernel.domain.clock import Clock, SystemClock
from fiscal_kernel.domain.collaborators import (
    AuditSink,
    PermissionChecker,
    ReadViewCache,
)
from fiscal_kernel.domain.context import RequestContext
from fiscal_kernel.domain.result import OperationResult
from fiscal_kernel.exceptions import (
    FiscalKernelError,
    PermissionDeniedError,
    PersistenceError,
)
from fiscal_kernel.logging_config import LogContext, get_logger

ModelType = TypeVar("ModelType", bound=Base)
T = TypeVar("T")

logger = get_logger("services.base")

_PENDING_INVALIDATIONS = "fiscal_pending_view_invalidations"
_LISTENER_INSTALLED = "fiscal_view_invalidation_listener"


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for flush-only kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read methods; those belong in
          ``fiscal_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session


class TransactionalService:
    """
    Base for services that own one transaction per public operation.

    Contract:
        Subclasses implement each public operation as a closure passed to
        ``_execute``.  The closure raises ``FiscalKernelError`` subclasses
        for refusals and returns the operation's value on success.

    Guarantees:
        - ``_execute`` never raises a ``FiscalKernelError`` or
          ``SQLAlchemyError``; both come back as a failed result.
        - With ``auto_commit=False`` the caller owns commit/rollback and the
          service only flushes.
    """

    def __init__(
        self,
        session: Session,
        permissions: PermissionChecker,
        audit: AuditSink | None = None,
        clock: Clock | None = None,
        cache: ReadViewCache | None = None,
        auto_commit: bool = True,
    ):
        self.session = session
        self._permissions = permissions
        self._audit_sink = audit
        self._clock = clock or SystemClock()
        self._cache = cache
        self._auto_commit = auto_commit

    def _execute(
        self,
        context: RequestContext,
        permission: str,
        operation: str,
        work: Callable[[], T],
        read_only: bool = False,
    ) -> OperationResult[T]:
        allowed, reason = self._permissions.check(context, permission)
        if not allowed:
            logger.warning(
                "permission_denied",
                extra={
                    "operation": operation,
                    "permission": permission,
                    "role": context.role,
                    "reason": reason,
                    **context.log_fields(),
                },
            )
            return OperationResult.failed(
                PermissionDeniedError(permission, context.role, reason)
            )

        with LogContext.bind(
            organization_id=context.organization_id,
            actor_id=context.actor_id,
        ):
            try:
                value = work()
                if self._auto_commit and not read_only:
                    self.session.commit()
                return OperationResult.ok(value)

            except FiscalKernelError as exc:
                self._rollback()
                if isinstance(exc, PersistenceError):
                    logger.error(
                        "operation_persistence_failed",
                        extra={"operation": operation},
                        exc_info=True,
                    )
                else:
                    logger.info(
                        "operation_rejected",
                        extra={
                            "operation": operation,
                            "error_code": exc.code,
                            "error_category": exc.category,
                        },
                    )
                return OperationResult.failed(exc)

            except SQLAlchemyError:
                self._rollback()
                logger.error(
                    "operation_persistence_failed",
                    extra={"operation": operation},
                    exc_info=True,
                )
                return OperationResult.failed(PersistenceError(operation))

            except Exception:
                self._rollback()
                raise

    def _rollback(self) -> None:
        if self._auto_commit:
            self.session.rollback()

    def _audit(
        self,
        context: RequestContext,
        action: str,
        entity_type: str,
        entity_id: Any,
        summary: str,
        structured_context: Mapping[str, Any] | None = None,
    ) -> None:
        if self._audit_sink is None:
            return
        try:
            self._audit_sink.record(
                context,
                action,
                entity_type,
                str(entity_id) if entity_id is not None else None,
                summary,
                structured_context,
            )
        except Exception:
            logger.warning(
                "audit_record_failed",
                extra={
                    "action": action,
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                },
                exc_info=True,
            )

    def _invalidate_views(self, organization_id) -> None:
        """
        Drop the organization's cached views now and again when the
        session's outermost transaction ends (commit or rollback).

        Until then ``_views_pending`` reports the organization so readers on
        this session bypass the cache instead of memoizing uncommitted rows.
        """
        if self._cache is None:
            return
        self._cache.invalidate_organization(organization_id)
        pending = self.session.info.setdefault(_PENDING_INVALIDATIONS, [])
        pending.append((self._cache, organization_id))
        if not self.session.info.get(_LISTENER_INSTALLED):
            event.listen(self.session, "after_transaction_end", _flush_pending_invalidations)
            self.session.info[_LISTENER_INSTALLED] = True

    def _views_pending(self, organization_id) -> bool:
        return any(
            org == organization_id
            for _, org in self.session.info.get(_PENDING_INVALIDATIONS, ())
        )


def _flush_pending_invalidations(session: Session, transaction) -> None:
    # Savepoints end inside the outer transaction; only the root counts.
    if transaction.parent is not None:
        return
    pending = session.info.pop(_PENDING_INVALIDATIONS, None)
    for cache, organization_id in pending or ():
        cache.invalidate_organization(organization_id)
    if pending:
        logger.debug(
            "read_views_invalidated",
            extra={"organization_count": len({org for _, org in pending})},
        )
