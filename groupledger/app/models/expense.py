"""
models/expense.py — group membership and expense records.

These mirror what an expense store hands to the ledger aggregator: who is in
the group, who paid for what, and how each expense is split.
No business logic. No imports from services or routes.

Key design points:
  - `is_deleted` expenses are kept in the input but excluded from balances.
  - `amount` and every participant share are Decimal: never float.
  - A participant with `paid=True` has already repaid the payer for their
    share. The payer's own participant entry is always marked paid.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

from groupledger.app.models.balance import MemberId


# ── Enum Definitions ───────────────────────────────────────────────────────

class SplitMode(str, enum.Enum):
    EQUAL      = "equal"
    CUSTOM     = "custom"
    PERCENTAGE = "percentage"


# ── Records ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Member:
    member_id:    MemberId
    display_name: str
    is_active:    bool = True


@dataclass(frozen=True)
class SplitParticipant:
    member_id: MemberId
    amount:    Decimal
    paid:      bool = False


@dataclass(frozen=True)
class ExpenseRecord:
    expense_id:   str
    paid_by:      MemberId
    amount:       Decimal
    participants: tuple[SplitParticipant, ...]
    split_mode:   SplitMode = SplitMode.CUSTOM
    description:  str = ""
    is_deleted:   bool = False
