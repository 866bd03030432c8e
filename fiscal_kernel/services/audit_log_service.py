"""
AuditLogService -- default AuditSink backed by the audit_logs table.

Responsibility:
    Persists one AuditLogRecord per audited mutation, inside the same
    transaction as the mutation so that a rolled-back operation leaves no
    audit row behind.

Architecture position:
    Kernel > Services.  Implements ``fiscal_kernel.domain.AuditSink``.

Failure modes:
    - The insert runs inside a savepoint.  A failed insert rolls back only
      the savepoint and re-raises; TransactionalService._audit logs it and
      the audited operation still commits.
"""

from enum import Enum
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from fiscal_kernel.domain.clock import Clock, SystemClock
from fiscal_kernel.domain.context import RequestContext
from fiscal_kernel.logging_config import get_logger
from fiscal_kernel.models.audit_log import AuditLogRecord

logger = get_logger("services.audit_log")


class AuditLogService:
    """Audit sink writing to the kernel's own table."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()

    def record(
        self,
        context: RequestContext,
        action: str,
        entity_type: str,
        entity_id: str | None,
        summary: str,
        structured_context: Mapping[str, Any] | None = None,
    ) -> None:
        action_code = action.value if isinstance(action, Enum) else action
        with self.session.begin_nested():
            self.session.add(
                AuditLogRecord(
                    organization_id=context.organization_id,
                    actor_id=context.actor_id,
                    action=action_code,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    summary=summary[:1000],
                    context=dict(structured_context) if structured_context else None,
                    occurred_at=self._clock.now(),
                )
            )
        logger.debug(
            "audit_recorded",
            extra={"action": action_code, "entity_type": entity_type, "entity_id": entity_id},
        )

    def list_for_entity(self, entity_type: str, entity_id: str) -> list[AuditLogRecord]:
        """Audit rows for one entity, oldest first."""
        return list(
            self.session.execute(
                select(AuditLogRecord)
                .where(
                    AuditLogRecord.entity_type == entity_type,
                    AuditLogRecord.entity_id == entity_id,
                )
                .order_by(AuditLogRecord.occurred_at, AuditLogRecord.id)
            ).scalars()
        )
