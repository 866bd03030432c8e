"""
AccountRegistry -- organization-scoped chart of accounts.

Responsibility:
    Creates, edits, (de)activates, deletes and seeds accounts.  Owns the
    parent/child tree and keeps it acyclic.

Architecture position:
    Kernel > Services.  Reads through AccountSelector, writes Account rows,
    reads the packaged standard chart from ``fiscal_config``.

Invariants enforced:
    - Account code is 1-20 digits and unique per organization.
    - A parent is an account of the same organization.
    - No account is its own ancestor: the ancestors of a proposed parent
      are walked before the assignment is accepted.
    - An account referenced by journal lines is never physically deleted;
      delete soft-deactivates it so historical lines keep their code/name.

Failure modes:
    - ValidationError family: bad code/name/type, DuplicateAccountCodeError,
      AccountCycleError, AccountHasChildrenError, InvalidAccountError for a
      parent outside the organization.
    - AccountNotFoundError for an unknown id.
    - PermissionDeniedError before any of the above.

Audit relevance:
    Every mutation records an ``account.*`` audit action and invalidates the
    organization's cached ledger views (account names appear in them).
"""

from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from fiscal_config import get_standard_chart
from fiscal_kernel.domain.clock import Clock
from fiscal_kernel.domain.collaborators import (
    AuditSink,
    PermissionChecker,
    ReadViewCache,
)
from fiscal_kernel.domain.context import RequestContext
from fiscal_kernel.domain.dtos import AccountView
from fiscal_kernel.domain.result import OperationResult
from fiscal_kernel.exceptions import (
    AccountCycleError,
    AccountHasChildrenError,
    AccountNotFoundError,
    DuplicateAccountCodeError,
    InvalidAccountError,
    ValidationError,
)
from fiscal_kernel.logging_config import get_logger
from fiscal_kernel.models.account import Account, AccountType
from fiscal_kernel.models.audit_log import AuditAction
from fiscal_kernel.selectors.account_selector import AccountSelector
from fiscal_kernel.services.base import TransactionalService

logger = get_logger("services.account_registry")

MAX_CODE_LENGTH = 20
MAX_NAME_LENGTH = 255

# Sentinel: "leave parent unchanged" (None means "move to root").
UNCHANGED: Any = object()


class AccountDeleteOutcome(str, Enum):
    """What ``delete_account`` actually did."""

    DELETED = "deleted"
    DEACTIVATED = "deactivated"


def _validate_code(code: str) -> str:
    code = (code or "").strip()
    if not code or len(code) > MAX_CODE_LENGTH or not code.isdigit():
        raise ValidationError(
            f"Account code must be 1-{MAX_CODE_LENGTH} digits, got {code!r}",
            field="code",
        )
    return code


def _validate_name(name: str) -> str:
    name = (name or "").strip()
    if not name or len(name) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"Account name must be 1-{MAX_NAME_LENGTH} characters",
            field="name",
        )
    return name


def _parse_type(account_type: AccountType | str) -> AccountType:
    try:
        return AccountType(str(getattr(account_type, "value", account_type)).lower())
    except ValueError:
        raise ValidationError(
            f"Unknown account type: {account_type!r}", field="account_type"
        ) from None


class AccountRegistry(TransactionalService):
    """
    Chart-of-accounts write service.

    Contract:
        Every public method takes a RequestContext and returns an
        OperationResult.  Permissions: ``accounts.view``,
        ``accounts.create``, ``accounts.edit``, ``accounts.delete``.

    Guarantees:
        - The parent graph of an organization stays acyclic.
        - ``seed_standard_chart`` is a no-op for an organization that
          already has accounts.

    Non-goals:
        - Does NOT renumber or re-parent children when a code changes.
    """

    def __init__(
        self,
        session: Session,
        permissions: PermissionChecker,
        audit: AuditSink | None = None,
        clock: Clock | None = None,
        cache: ReadViewCache | None = None,
        auto_commit: bool = True,
        chart_path: Path | None = None,
    ):
        super().__init__(
            session,
            permissions,
            audit=audit,
            clock=clock,
            cache=cache,
            auto_commit=auto_commit,
        )
        self._selector = AccountSelector(session)
        self._chart_path = chart_path

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_accounts(
        self,
        context: RequestContext,
        include_inactive: bool = True,
    ) -> OperationResult[list[AccountView]]:
        return self._execute(
            context,
            "accounts.view",
            "list_accounts",
            lambda: self._selector.list_accounts(
                context.organization_id, include_inactive=include_inactive
            ),
            read_only=True,
        )

    def get_account(
        self, context: RequestContext, account_id: UUID
    ) -> OperationResult[AccountView]:
        def work() -> AccountView:
            view = self._selector.get_account(context.organization_id, account_id)
            if view is None:
                raise AccountNotFoundError(str(account_id))
            return view

        return self._execute(
            context, "accounts.view", "get_account", work, read_only=True
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_account(
        self,
        context: RequestContext,
        code: str,
        name: str,
        account_type: AccountType | str,
        parent_id: UUID | None = None,
    ) -> OperationResult[AccountView]:
        def work() -> AccountView:
            org = context.organization_id
            clean_code = _validate_code(code)
            clean_name = _validate_name(name)
            parsed_type = _parse_type(account_type)

            if self._selector.code_exists(org, clean_code):
                raise DuplicateAccountCodeError(clean_code)
            if parent_id is not None:
                self._require_parent(org, parent_id)

            account = Account(
                organization_id=org,
                code=clean_code,
                name=clean_name,
                account_type=parsed_type.value,
                parent_id=parent_id,
                is_active=True,
                created_by_id=context.actor_id,
            )
            self.session.add(account)
            self.session.flush()

            logger.info(
                "account_created",
                extra={"account_id": str(account.id), "account_code": clean_code},
            )
            self._audit(
                context,
                AuditAction.ACCOUNT_CREATE,
                "account",
                account.id,
                f"Created account {clean_code} {clean_name}",
            )
            self._invalidate_views(org)
            return self._view(org, account)

        return self._execute(context, "accounts.create", "create_account", work)

    def update_account(
        self,
        context: RequestContext,
        account_id: UUID,
        code: str | None = None,
        name: str | None = None,
        account_type: AccountType | str | None = None,
        parent_id: UUID | None = UNCHANGED,
    ) -> OperationResult[AccountView]:
        """
        Edit an account.  Omitted fields are unchanged; ``parent_id=None``
        moves the account to the root of the tree.
        """

        def work() -> AccountView:
            org = context.organization_id
            account = self._load(org, account_id)
            changes: dict[str, str] = {}

            if code is not None:
                clean_code = _validate_code(code)
                if clean_code != account.code:
                    if self._selector.code_exists(org, clean_code, exclude_id=account.id):
                        raise DuplicateAccountCodeError(clean_code)
                    changes["code"] = f"{account.code} -> {clean_code}"
                    account.code = clean_code
            if name is not None:
                clean_name = _validate_name(name)
                if clean_name != account.name:
                    changes["name"] = f"{account.name} -> {clean_name}"
                    account.name = clean_name
            if account_type is not None:
                parsed_type = _parse_type(account_type)
                if parsed_type.value != account.account_type:
                    changes["account_type"] = (
                        f"{account.account_type} -> {parsed_type.value}"
                    )
                    account.account_type = parsed_type.value
            if parent_id is not UNCHANGED and parent_id != account.parent_id:
                if parent_id is not None:
                    self._require_parent(org, parent_id)
                    self._check_no_cycle(org, account.id, parent_id)
                changes["parent_id"] = f"{account.parent_id} -> {parent_id}"
                account.parent_id = parent_id

            if changes:
                account.updated_by_id = context.actor_id
                self.session.flush()
                logger.info(
                    "account_updated",
                    extra={
                        "account_id": str(account.id),
                        "changed_fields": sorted(changes),
                    },
                )
                self._audit(
                    context,
                    AuditAction.ACCOUNT_UPDATE,
                    "account",
                    account.id,
                    f"Updated account {account.code}",
                    changes,
                )
                self._invalidate_views(org)
            return self._view(org, account)

        return self._execute(context, "accounts.edit", "update_account", work)

    def set_account_active(
        self, context: RequestContext, account_id: UUID, active: bool
    ) -> OperationResult[AccountView]:
        def work() -> AccountView:
            org = context.organization_id
            account = self._load(org, account_id)
            if account.is_active != active:
                account.is_active = active
                account.updated_by_id = context.actor_id
                self.session.flush()
                logger.info(
                    "account_activation_changed",
                    extra={"account_id": str(account.id), "is_active": active},
                )
                self._audit(
                    context,
                    AuditAction.ACCOUNT_ACTIVATE if active else AuditAction.ACCOUNT_DEACTIVATE,
                    "account",
                    account.id,
                    f"{'Activated' if active else 'Deactivated'} account {account.code}",
                )
                self._invalidate_views(org)
            return self._view(org, account)

        return self._execute(context, "accounts.edit", "set_account_active", work)

    def delete_account(
        self, context: RequestContext, account_id: UUID
    ) -> OperationResult[AccountDeleteOutcome]:
        """
        Delete an account.

        Referenced by journal lines: soft-deactivated.  Has sub-accounts:
        refused.  Otherwise: physically removed.
        """

        def work() -> AccountDeleteOutcome:
            org = context.organization_id
            account = self._load(org, account_id)

            if self._selector.is_referenced(account.id):
                account.is_active = False
                account.updated_by_id = context.actor_id
                self.session.flush()
                outcome = AccountDeleteOutcome.DEACTIVATED
                action = AuditAction.ACCOUNT_DEACTIVATE
                summary = f"Deactivated account {account.code} (has journal lines)"
            else:
                children = self._selector.child_count(org, account.id)
                if children:
                    raise AccountHasChildrenError(str(account.id), children)
                self.session.delete(account)
                self.session.flush()
                outcome = AccountDeleteOutcome.DELETED
                action = AuditAction.ACCOUNT_DELETE
                summary = f"Deleted account {account.code} {account.name}"

            logger.info(
                "account_deleted",
                extra={"account_id": str(account_id), "outcome": outcome.value},
            )
            self._audit(context, action, "account", account_id, summary)
            self._invalidate_views(org)
            return outcome

        return self._execute(context, "accounts.delete", "delete_account", work)

    def seed_standard_chart(self, context: RequestContext) -> OperationResult[int]:
        """Insert the standard chart for an empty organization; returns rows inserted."""

        def work() -> int:
            org = context.organization_id
            if self._selector.count(org) > 0:
                logger.info("chart_seed_skipped", extra={"reason": "already_seeded"})
                return 0

            chart = get_standard_chart(self._chart_path)
            by_code: dict[str, Account] = {}
            for definition in chart.accounts:
                parent_code = chart.parent_code(definition.code)
                parent = by_code.get(parent_code) if parent_code else None
                account = Account(
                    organization_id=org,
                    code=definition.code,
                    name=definition.name,
                    account_type=definition.account_type,
                    parent=parent,
                    is_active=True,
                    created_by_id=context.actor_id,
                )
                self.session.add(account)
                by_code[definition.code] = account
            self.session.flush()

            inserted = len(by_code)
            logger.info(
                "chart_seeded",
                extra={"chart_name": chart.name, "account_count": inserted},
            )
            self._audit(
                context,
                AuditAction.ACCOUNT_SEED,
                "organization",
                org,
                f"Seeded standard chart of accounts ({inserted} accounts)",
                {"chart": chart.name, "version": chart.version, "count": inserted},
            )
            self._invalidate_views(org)
            return inserted

        return self._execute(context, "accounts.create", "seed_standard_chart", work)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, organization_id: UUID, account_id: UUID) -> Account:
        account = self.session.execute(
            select(Account).where(
                Account.id == account_id,
                Account.organization_id == organization_id,
            )
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def _require_parent(self, organization_id: UUID, parent_id: UUID) -> None:
        exists = self.session.execute(
            select(Account.id).where(
                Account.id == parent_id,
                Account.organization_id == organization_id,
            )
        ).first()
        if exists is None:
            raise InvalidAccountError(
                str(parent_id), "parent account not found in organization"
            )

    def _check_no_cycle(
        self, organization_id: UUID, account_id: UUID, parent_id: UUID
    ) -> None:
        parents = self._selector.parent_map(organization_id)
        seen: set[UUID] = set()
        current: UUID | None = parent_id
        while current is not None and current not in seen:
            if current == account_id:
                raise AccountCycleError(str(account_id), str(parent_id))
            seen.add(current)
            current = parents.get(current)

    def _view(self, organization_id: UUID, account: Account) -> AccountView:
        view = self._selector.get_account(organization_id, account.id)
        if view is None:
            raise AccountNotFoundError(str(account.id))
        return view
