"""
services/settlement_service.py — Settlement engine (debt netting).

Turns per-member balances of one group into suggested transfers
("B pays A 300.00") that bring every balance to zero.

Algorithm (greedy two-pointer matching):
  1. Creditors (balance > 0) sorted descending, debtors (balance < 0)
     sorted ascending, i.e. largest debt first.
  2. Match the head creditor with the head debtor for
     min(credit, |debt|), shrink both, drop whichever reached zero.
  3. Stop when either side runs out.
  For N members with a non-zero balance this yields at most N-1 transfers.
  It is not guaranteed to find the fewest transfers possible.

Tie-break: sorting is stable, so members with equal balances keep their
input order. Two creditors with equal credit are paid in the order they
were supplied.

Money: every balance is quantized to SETTLEMENT_QUANTUM (ROUND_HALF_EVEN)
before the walk, so the walk is exact Decimal arithmetic. Anything smaller
than one quantum is dust: no transfer is suggested for it and a member left
with less than one quantum is considered settled.

Unbalanced input (sum of balances != 0) is not fatal by default: the walk
still terminates, the unmatched residual stays in the returned balances and
an UNBALANCED_LEDGER warning is attached. SETTLEMENT_STRICT_BALANCE turns it
into an AppError instead.

Layer rules:
  - Pure functions. Input records are never mutated.
  - Boundary functions (settle_payload, settle_group_payload) validate raw
    input through the marshmallow schemas and raise AppError on failure.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from decimal import ROUND_HALF_EVEN, Decimal
from typing import NamedTuple

from marshmallow import ValidationError

from groupledger.app.errors import AppError, ErrorCode, WarningCode, app_error_from_validation
from groupledger.app.models.balance import (
    MemberBalance,
    MemberId,
    SettlementResult,
    SettlementSummary,
    Transfer,
)
from groupledger.app.models.expense import ExpenseRecord, Member
from groupledger.app.schemas.balance_schema import BalanceInputSchema
from groupledger.app.schemas.group_schema import GroupLedgerSchema
from groupledger.app.schemas.settlement_schema import SettlementResponseSchema
from groupledger.app.services import balance_service
from groupledger.config import ActiveConfig, BaseConfig


logger = logging.getLogger(__name__)

_DEFAULT_QUANTUM = Decimal("0.01")


class _WalkState(NamedTuple):
    """
    State threaded through the greedy walk.

    creditors / debtors hold the members still to be matched, head first.
    finished holds members dropped from either list, with their residual.
    """

    creditors: tuple[MemberBalance, ...]
    debtors:   tuple[MemberBalance, ...]
    transfers: tuple[Transfer, ...]
    finished:  tuple[MemberBalance, ...]


# ── Private helpers ────────────────────────────────────────────────────────

def _require_unique_members(balances: Iterable[MemberBalance]) -> None:
    """Raises DUPLICATE_MEMBER (400) if a member id appears twice."""
    seen: set[MemberId] = set()
    for entry in balances:
        if entry.member_id in seen:
            raise AppError(
                ErrorCode.DUPLICATE_MEMBER,
                f"Member {entry.member_id!r} appears more than once.",
                400,
                field="memberId",
            )
        seen.add(entry.member_id)


def _quantize(amount: Decimal, quantum: Decimal) -> Decimal:
    quantized = amount.quantize(quantum, rounding=ROUND_HALF_EVEN)
    # -0.004 rounds to -0.00; report it as 0.00.
    return quantized.copy_abs() if quantized.is_zero() else quantized


def _quantize_all(
        balances: Iterable[MemberBalance],
        quantum: Decimal,
) -> list[MemberBalance]:
    return [b.with_balance(_quantize(b.balance, quantum)) for b in balances]


def _match_heads(state: _WalkState, quantum: Decimal) -> _WalkState:
    """
    One step of the walk: settles as much as possible between the head
    creditor and the head debtor and returns the next state.
    """
    creditor = state.creditors[0]
    debtor = state.debtors[0]

    amount = min(creditor.balance, -debtor.balance)

    transfers = state.transfers
    if amount >= quantum:
        transfers = transfers + (Transfer(
            from_member_id=debtor.member_id,
            to_member_id=creditor.member_id,
            amount=amount,
            from_name=debtor.display_name,
            to_name=creditor.display_name,
        ),)

    creditor = creditor.with_balance(creditor.balance - amount)
    debtor = debtor.with_balance(debtor.balance + amount)

    creditors = (creditor,) + state.creditors[1:]
    debtors = (debtor,) + state.debtors[1:]
    finished = state.finished

    if creditor.balance < quantum:
        creditors = creditors[1:]
        finished = finished + (creditor,)
    if debtor.balance > -quantum:
        debtors = debtors[1:]
        finished = finished + (debtor,)

    return _WalkState(creditors, debtors, transfers, finished)


# ── Core algorithm ─────────────────────────────────────────────────────────

def simplify_debts(
        balances: Sequence[MemberBalance],
        quantum: Decimal = _DEFAULT_QUANTUM,
) -> tuple[list[Transfer], list[MemberBalance]]:
    """
    Greedy debt simplification.

    Args:
        balances: One MemberBalance per group member. Order only matters for
                  breaking ties between equal balances. Should sum to zero;
                  see the module docstring for what happens if it does not.
        quantum:  Currency minor unit. Balances are quantized to it and
                  amounts below it are treated as zero.

    Returns:
        (transfers, residual_balances)
        transfers: in generation order; empty when nothing needs settling.
        residual_balances: every input member in input order, with the
                  balance left after all transfers are applied.

    Raises:
        AppError(DUPLICATE_MEMBER, 400)
    """
    _require_unique_members(balances)
    quantized = _quantize_all(balances, quantum)

    state = _WalkState(
        creditors=tuple(sorted(
            (b for b in quantized if b.balance > 0),
            key=lambda b: b.balance,
            reverse=True,
        )),
        debtors=tuple(sorted(
            (b for b in quantized if b.balance < 0),
            key=lambda b: b.balance,
        )),
        transfers=(),
        finished=(),
    )

    while state.creditors and state.debtors:
        state = _match_heads(state, quantum)

    residual = {
        b.member_id: b.balance
        for b in state.finished + state.creditors + state.debtors
    }
    residual_balances = [
        b.with_balance(residual.get(b.member_id, b.balance))
        for b in quantized
    ]
    return list(state.transfers), residual_balances


def summarize(
        balances: Iterable[MemberBalance],
        transfers: Sequence[Transfer],
) -> SettlementSummary:
    """
    total_owed:  what debtors owe in total (sum of |negative balances|).
    total_owing: what creditors are owed in total (sum of positive balances).
    is_settled:  nothing left to transfer.

    Pass the balances as they were BEFORE settlement; residual balances
    are zero by construction and would always summarise to zero.
    """
    amounts = [b.balance for b in balances]
    return SettlementSummary(
        total_owed=sum((-a for a in amounts if a < 0), Decimal("0.00")),
        total_owing=sum((a for a in amounts if a > 0), Decimal("0.00")),
        is_settled=not transfers,
    )


# ── Public service functions ───────────────────────────────────────────────

def settle_balances(
        balances: Sequence[MemberBalance],
        config: type[BaseConfig] | None = None,
) -> SettlementResult:
    """
    Settles one group's balances.

    Enforces:
      - member ids are unique (DUPLICATE_MEMBER, 400)
      - the ledger is balanced: a non-zero sum adds an UNBALANCED_LEDGER
        warning, or raises AppError(UNBALANCED_LEDGER, 422) when
        SETTLEMENT_STRICT_BALANCE is set

    Args:
        balances: Validated MemberBalance records (see BalanceInputSchema).
        config:   Config class; defaults to ActiveConfig.

    Returns:
        SettlementResult with residual balances, transfers, summary,
        imbalance and warnings.
    """
    config = config or ActiveConfig
    quantum = config.SETTLEMENT_QUANTUM

    _require_unique_members(balances)
    quantized = _quantize_all(balances, quantum)
    imbalance = sum((b.balance for b in quantized), Decimal("0.00"))

    warnings: list[dict] = []
    if abs(imbalance) >= quantum:
        message = (
            f"Member balances add up to {imbalance} instead of zero. "
            f"Suggested transfers cover only the part that can be matched."
        )
        if config.SETTLEMENT_STRICT_BALANCE:
            raise AppError(ErrorCode.UNBALANCED_LEDGER, message, 422)

        logger.warning(
            "Unbalanced ledger: %d members, balances sum to %s",
            len(quantized), imbalance,
        )
        warnings.append({"code": WarningCode.UNBALANCED_LEDGER, "message": message})

    transfers, residual = simplify_debts(quantized, quantum)
    summary = summarize(quantized, transfers)

    logger.debug(
        "Settled %d members with %d transfers (owed=%s, owing=%s)",
        len(quantized), len(transfers), summary.total_owed, summary.total_owing,
    )

    return SettlementResult(
        balances=tuple(residual),
        transfers=tuple(transfers),
        summary=summary,
        imbalance=imbalance,
        currency=config.DEFAULT_CURRENCY,
        warnings=tuple(warnings),
    )


def settle_group(
        members: Sequence[Member],
        expenses: Iterable[ExpenseRecord],
        config: type[BaseConfig] | None = None,
) -> SettlementResult:
    """
    Computes the group's ledger from its expenses and settles it.

    The ledger entries (total paid / total owed per member) are attached to
    the result so a caller can show where each balance came from.

    Raises:
        AppError from balance_service.validate_expense for corrupt expenses,
        and anything settle_balances() raises.
    """
    ledger = balance_service.compute_ledger(members, expenses)
    result = settle_balances(balance_service.ledger_to_balances(ledger), config)
    return replace(result, ledger=tuple(ledger))


def settle_payload(payload, config: type[BaseConfig] | None = None) -> dict:
    """
    Boundary entry point for raw balances.

    Args:
        payload: list of {"memberId", "displayName", "balance"} dicts, as a
                 web layer would receive them.

    Returns:
        The settlement response dict (SettlementResponseSchema), monetary
        amounts as strings.

    Raises:
        AppError(MISSING_FIELD / INVALID_FIELD, 400) for malformed input.
    """
    try:
        balances = BalanceInputSchema(many=True).load(payload)
    except ValidationError as err:
        raise app_error_from_validation(err) from err

    result = settle_balances(balances, config)
    return SettlementResponseSchema(exclude=("ledger",)).dump(result)


def settle_group_payload(payload, config: type[BaseConfig] | None = None) -> dict:
    """
    Boundary entry point for a whole group: {"members": [...], "expenses": [...]}.

    Returns the settlement response dict including the "ledger" section.
    """
    config = config or ActiveConfig
    try:
        data = GroupLedgerSchema().load(payload)
    except ValidationError as err:
        raise app_error_from_validation(err) from err

    members: list[Member] = data["members"]
    member_ids = [m.member_id for m in balance_service.get_active_members(members)]
    expenses = [
        balance_service.build_expense(expense, member_ids, config.SETTLEMENT_QUANTUM)
        for expense in data["expenses"]
        if not expense.get("is_deleted")
    ]

    result = settle_group(members, expenses, config)
    return SettlementResponseSchema().dump(result)
