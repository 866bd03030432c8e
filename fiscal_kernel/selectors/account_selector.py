"""
Module: fiscal_kernel.selectors.account_selector
Responsibility: Read-only chart-of-accounts queries, including derived depth
    and the reference/children checks that drive account deletion.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Depth is computed from the parent chain on read; a broken or cyclic
      chain stops the walk instead of looping.
"""

from uuid import UUID

from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session

from fiscal_kernel.domain.dtos import AccountView
from fiscal_kernel.models.account import Account, AccountType
from fiscal_kernel.models.journal import JournalLine
from fiscal_kernel.selectors.base import BaseSelector


def _depth(account_id: UUID, parents: dict[UUID, UUID | None]) -> int:
    depth = 0
    seen = {account_id}
    parent = parents.get(account_id)
    while parent is not None and parent not in seen:
        depth += 1
        seen.add(parent)
        parent = parents.get(parent)
    return depth


def _to_view(account: Account, depth: int) -> AccountView:
    return AccountView(
        id=account.id,
        organization_id=account.organization_id,
        code=account.code,
        name=account.name,
        account_type=AccountType(account.account_type),
        parent_id=account.parent_id,
        is_active=account.is_active,
        depth=depth,
    )


class AccountSelector(BaseSelector[Account]):
    """Selector for chart-of-accounts reads."""

    def __init__(self, session: Session):
        super().__init__(session)

    def parent_map(self, organization_id: UUID) -> dict[UUID, UUID | None]:
        """account_id -> parent_id for the whole organization (the arena)."""
        rows = self.session.execute(
            select(Account.id, Account.parent_id).where(
                Account.organization_id == organization_id
            )
        ).all()
        return {row.id: row.parent_id for row in rows}

    def list_accounts(
        self,
        organization_id: UUID,
        include_inactive: bool = True,
    ) -> list[AccountView]:
        """All accounts of the organization ordered by code."""
        query = select(Account).where(Account.organization_id == organization_id)
        if not include_inactive:
            query = query.where(Account.is_active.is_(True))
        accounts = self.session.execute(query.order_by(Account.code)).scalars().all()

        parents = self.parent_map(organization_id)
        return [_to_view(a, _depth(a.id, parents)) for a in accounts]

    def get_account(self, organization_id: UUID, account_id: UUID) -> AccountView | None:
        account = self.session.execute(
            select(Account).where(
                Account.id == account_id,
                Account.organization_id == organization_id,
            )
        ).scalar_one_or_none()
        if account is None:
            return None
        return _to_view(account, _depth(account.id, self.parent_map(organization_id)))

    def code_exists(
        self,
        organization_id: UUID,
        code: str,
        exclude_id: UUID | None = None,
    ) -> bool:
        query = select(Account.id).where(
            Account.organization_id == organization_id,
            Account.code == code,
        )
        if exclude_id is not None:
            query = query.where(Account.id != exclude_id)
        return self.session.execute(query.limit(1)).first() is not None

    def is_referenced(self, account_id: UUID) -> bool:
        """True when any journal line points at the account."""
        return self.session.execute(
            select(exists().where(JournalLine.account_id == account_id))
        ).scalar_one()

    def child_count(self, organization_id: UUID, account_id: UUID) -> int:
        return self.session.execute(
            select(func.count(Account.id)).where(
                Account.organization_id == organization_id,
                Account.parent_id == account_id,
            )
        ).scalar_one()

    def count(self, organization_id: UUID) -> int:
        return self.session.execute(
            select(func.count(Account.id)).where(
                Account.organization_id == organization_id
            )
        ).scalar_one()
