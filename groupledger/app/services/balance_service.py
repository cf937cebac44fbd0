"""
services/balance_service.py — Ledger aggregation and split computation.

This file is the SINGLE SOURCE OF TRUTH for how member balances are derived
from expense records. The formula must not be reimplemented elsewhere; the
settlement engine only ever sees the MemberBalance list produced here (or
supplied directly by a caller).

Layer rules:
  - No web framework, no persistence. Receives plain records as arguments.
  - Returns new records; never mutates its inputs.
  - Fully unit-testable without fixtures.

Balance formula (per member):
  total_paid = amounts fronted as payer
             + shares repaid to other payers (participant entries with paid=True)
  total_owed = every share the member consumed
             + shares other participants already repaid to them
  balance    = total_paid - total_owed

For expenses whose shares sum to the amount (validate_expense), the sum of
all balances is exactly zero.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from decimal import ROUND_DOWN, Decimal

from groupledger.app.errors import AppError, ErrorCode
from groupledger.app.models.balance import LedgerEntry, MemberBalance, MemberId
from groupledger.app.models.expense import ExpenseRecord, Member, SplitMode, SplitParticipant


logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


# ── Filters ────────────────────────────────────────────────────────────────
# These are the ONLY sanctioned ways to select members and expenses for
# balance purposes.

def get_active_members(members: Iterable[Member]) -> list[Member]:
    """Returns members that have not left the group, in input order."""
    return [m for m in members if m.is_active]


def get_active_expenses(expenses: Iterable[ExpenseRecord]) -> list[ExpenseRecord]:
    """Returns expenses that are not soft-deleted, in input order."""
    return [e for e in expenses if not e.is_deleted]


# ── Validation ─────────────────────────────────────────────────────────────

def validate_expense(expense: ExpenseRecord, member_ids: Iterable[MemberId]) -> None:
    """
    Checks the cross-entity rules a schema cannot check on its own.

    Raises:
        AppError(PAYER_NOT_MEMBER, 422)       -- payer is not an active member.
        AppError(DUPLICATE_SPLIT_USER, 400)   -- a member appears twice.
        AppError(SPLIT_USER_NOT_MEMBER, 422)  -- a participant is not an active member.
        AppError(SPLIT_SUM_MISMATCH, 422)     -- shares do not add up to the amount.
    """
    known = set(member_ids)

    if expense.paid_by not in known:
        raise AppError(
            ErrorCode.PAYER_NOT_MEMBER,
            f"Payer {expense.paid_by!r} of expense {expense.expense_id!r} "
            f"is not a member of the group.",
            422,
            field="paidBy",
        )

    seen: set[MemberId] = set()
    for participant in expense.participants:
        if participant.member_id in seen:
            raise AppError(
                ErrorCode.DUPLICATE_SPLIT_USER,
                f"Member {participant.member_id!r} appears more than once in "
                f"expense {expense.expense_id!r}.",
                400,
                field="participants",
            )
        seen.add(participant.member_id)

        if participant.member_id not in known:
            raise AppError(
                ErrorCode.SPLIT_USER_NOT_MEMBER,
                f"Participant {participant.member_id!r} of expense "
                f"{expense.expense_id!r} is not a member of the group.",
                422,
                field="participants",
            )

    total = sum((p.amount for p in expense.participants), Decimal("0.00"))
    if total != expense.amount:
        raise AppError(
            ErrorCode.SPLIT_SUM_MISMATCH,
            f"Split amounts ({total}) do not equal expense amount ({expense.amount}) "
            f"for expense {expense.expense_id!r}.",
            422,
            field="participants",
        )


# ── Core aggregation ───────────────────────────────────────────────────────

def compute_ledger(
        members: Sequence[Member],
        expenses: Iterable[ExpenseRecord],
) -> list[LedgerEntry]:
    """
    Canonical per-member ledger for one group.

    Returns one LedgerEntry per active member, in member input order, even
    when the member has no expenses at all.

    Only active members and non-deleted expenses are considered. Every
    remaining expense is validated against the active member ids first, so a
    corrupt expense fails the whole computation instead of skewing balances.
    """
    active = get_active_members(members)
    member_ids = [m.member_id for m in active]

    paid: dict[MemberId, Decimal] = {mid: Decimal("0.00") for mid in member_ids}
    owed: dict[MemberId, Decimal] = {mid: Decimal("0.00") for mid in member_ids}

    active_expenses = get_active_expenses(expenses)
    for expense in active_expenses:
        validate_expense(expense, member_ids)

        # Step 1: credit the payer for the full amount they fronted.
        paid[expense.paid_by] += expense.amount

        for participant in expense.participants:
            # Step 2: debit every participant for their share.
            owed[participant.member_id] += participant.amount

            # Step 3: net shares already repaid to the payer.
            if participant.paid and participant.member_id != expense.paid_by:
                paid[participant.member_id] += participant.amount
                owed[expense.paid_by] += participant.amount

    logger.debug(
        "Computed ledger for %d members from %d active expenses",
        len(active), len(active_expenses),
    )

    return [
        LedgerEntry(
            member_id=m.member_id,
            display_name=m.display_name,
            total_paid=paid[m.member_id],
            total_owed=owed[m.member_id],
        )
        for m in active
    ]


def build_expense(
        data: dict,
        member_ids: Sequence[MemberId],
        quantum: Decimal = _CENT,
) -> ExpenseRecord:
    """
    Turns a dict loaded by ExpenseSchema into an ExpenseRecord.

    Equal and percentage splits are computed here because they need the
    group's members; custom splits are taken as given.

    Args:
        data:       Validated dict from ExpenseSchema.
        member_ids: Active member ids, in group order. Equal splits without
                    explicit participantIds are divided among all of them.
    """
    mode = data.get("split_mode", SplitMode.CUSTOM)
    amount: Decimal = data["amount"]
    payer = data["paid_by"]

    if mode == SplitMode.EQUAL:
        participant_ids = data.get("participant_ids") or list(member_ids)
        participants = compute_equal_splits(amount, participant_ids, payer, quantum)
    elif mode == SplitMode.PERCENTAGE:
        percentages = {p["member_id"]: p["percentage"] for p in data["percentages"]}
        participants = compute_percentage_splits(amount, percentages, payer, quantum)
    else:
        participants = tuple(data["participants"])

    return ExpenseRecord(
        expense_id=data["expense_id"],
        paid_by=payer,
        amount=amount,
        participants=participants,
        split_mode=mode,
        description=data.get("description", ""),
        is_deleted=data.get("is_deleted", False),
    )


def ledger_to_balances(entries: Iterable[LedgerEntry]) -> list[MemberBalance]:
    """Projects ledger entries onto the MemberBalance records the engine consumes."""
    return [
        MemberBalance(
            member_id=entry.member_id,
            display_name=entry.display_name,
            balance=entry.balance,
        )
        for entry in entries
    ]


# ── Split helpers ──────────────────────────────────────────────────────────

def _assign_remainder(
        shares: list[list],
        amount: Decimal,
        payer_id: MemberId,
) -> None:
    """
    Adds whatever ROUND_DOWN left over to the payer's share. If the payer is
    not a participant, the first participant absorbs it.
    """
    remainder = amount - sum((s[1] for s in shares), Decimal("0.00"))
    if remainder > Decimal("0"):
        target = next((s for s in shares if s[0] == payer_id), shares[0])
        target[1] += remainder


def _as_participants(
        shares: list[list],
        amount: Decimal,
        payer_id: MemberId,
) -> tuple[SplitParticipant, ...]:
    participants = tuple(
        SplitParticipant(member_id=mid, amount=share, paid=(mid == payer_id))
        for mid, share in shares
    )

    # Must always hold; a failure here is a programming error.
    computed = sum((p.amount for p in participants), Decimal("0.00"))
    if computed != amount:
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            f"Split computation produced sum {computed} for amount {amount}. "
            f"This is a bug, please report it.",
            500,
        )
    return participants


def compute_equal_splits(
        amount: Decimal,
        participant_ids: Sequence[MemberId],
        payer_id: MemberId,
        quantum: Decimal = _CENT,
) -> tuple[SplitParticipant, ...]:
    """
    Divides amount evenly among participants using ROUND_DOWN.

    The remainder (at most n-1 quanta) is added to the payer's share, so the
    shares always add up to the amount exactly. The payer's own share is
    marked paid.

    Raises:
        AppError(INVALID_FIELD, 400) -- no participants.
    """
    n = len(participant_ids)
    if n == 0:
        raise AppError(
            ErrorCode.INVALID_FIELD,
            "An expense needs at least one participant.",
            400,
            field="participants",
        )

    base = (amount / Decimal(n)).quantize(quantum, rounding=ROUND_DOWN)
    shares = [[mid, base] for mid in participant_ids]
    _assign_remainder(shares, amount, payer_id)
    return _as_participants(shares, amount, payer_id)


def compute_percentage_splits(
        amount: Decimal,
        percentages: Mapping[MemberId, Decimal],
        payer_id: MemberId,
        quantum: Decimal = _CENT,
) -> tuple[SplitParticipant, ...]:
    """
    Splits amount by percentage. Percentages must add up to exactly 100.

    Each share is amount * pct / 100 rounded down to the quantum; the
    remainder goes to the payer as in compute_equal_splits().

    Raises:
        AppError(INVALID_SPLIT_PERCENTAGES, 400)
    """
    total_pct = sum(percentages.values(), Decimal("0"))
    if not percentages or total_pct != _HUNDRED or any(p < 0 for p in percentages.values()):
        raise AppError(
            ErrorCode.INVALID_SPLIT_PERCENTAGES,
            f"Split percentages must be non-negative and add up to 100 (got {total_pct}).",
            400,
            field="participants",
        )

    shares = [
        [mid, (amount * pct / _HUNDRED).quantize(quantum, rounding=ROUND_DOWN)]
        for mid, pct in percentages.items()
    ]
    _assign_remainder(shares, amount, payer_id)
    return _as_participants(shares, amount, payer_id)
