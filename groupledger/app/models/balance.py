"""
models/balance.py — settlement records.

Plain immutable records. No business logic, no imports from services or
schemas. All monetary fields are Decimal: never float.

Sign convention for MemberBalance.balance:
  > 0  creditor (is owed money)
  < 0  debtor   (owes money)
  == 0 settled
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Union

# Opaque member identifier. Database ids arrive as int, document ids as str.
MemberId = Union[str, int]


@dataclass(frozen=True)
class MemberBalance:
    member_id:    MemberId
    display_name: str
    balance:      Decimal

    def with_balance(self, balance: Decimal) -> MemberBalance:
        return replace(self, balance=balance)


@dataclass(frozen=True)
class Transfer:
    """A suggested payment from a debtor to a creditor. Never persisted."""

    from_member_id: MemberId
    to_member_id:   MemberId
    amount:         Decimal
    from_name:      str = ""
    to_name:        str = ""


@dataclass(frozen=True)
class SettlementSummary:
    total_owed:  Decimal   # sum of debts (absolute value of negative balances)
    total_owing: Decimal   # sum of credits (positive balances)
    is_settled:  bool


@dataclass(frozen=True)
class LedgerEntry:
    """Per-member totals produced by balance_service.compute_ledger()."""

    member_id:    MemberId
    display_name: str
    total_paid:   Decimal
    total_owed:   Decimal

    @property
    def balance(self) -> Decimal:
        return self.total_paid - self.total_owed


@dataclass(frozen=True)
class SettlementResult:
    """
    Output of settlement_service.settle_balances() / settle_group().

    `balances` are the residual balances after every suggested transfer is
    applied: all zero for a balanced ledger. `imbalance` is the signed sum of
    the input balances; anything other than zero is reported in `warnings`.
    """

    balances:  tuple[MemberBalance, ...]
    transfers: tuple[Transfer, ...]
    summary:   SettlementSummary
    imbalance: Decimal = Decimal("0.00")
    currency:  str = ""
    warnings:  tuple[dict, ...] = ()
    ledger:    tuple[LedgerEntry, ...] = ()
