"""
schemas/expense_schema.py — Marshmallow schemas for group expense records.

Validation responsibility:
  - This file:
      - Field types, decimal precision (max 2 dp), positive amounts
      - SPLITS_SENT_FOR_EQUAL_MODE (400): request shape rule
      - participants required for splitType='custom',
        percentages required for splitType='percentage'
      - DUPLICATE_SPLIT_USER (400): request shape rule
  - services/balance_service.py:
      - SPLIT_SUM_MISMATCH (422): requires Decimal arithmetic
      - PAYER_NOT_MEMBER (422): requires the member list
      - SPLIT_USER_NOT_MEMBER (422): requires the member list
      - INVALID_SPLIT_PERCENTAGES (400): percentages must total 100

Loads into a plain dict; balance_service.build_expense() turns it into an
ExpenseRecord once the group's members are known.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    post_load,
    validate,
    validates_schema,
)

from groupledger.app.errors import ErrorCode
from groupledger.app.models.expense import SplitMode, SplitParticipant
from groupledger.app.schemas.balance_schema import MemberIdField, validate_magnitude


# ── Shared monetary validators ─────────────────────────────────────────────
#
# Input with more than 2 decimal places is REJECTED with
# INVALID_AMOUNT_PRECISION: never rounded or truncated. Magnitude is bounded
# by balance_schema.MAX_AMOUNT.
# ──────────────────────────────────────────────────────────────────────────

def _check_precision(value: Decimal) -> None:
    # Decimal("10.123").as_tuple().exponent == -3  → 3 dp → REJECT
    # Decimal("10.12").as_tuple().exponent  == -2  → 2 dp → accept
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_monetary_amount(value: Decimal) -> None:
    """Expense amount: strictly greater than zero, at most 2 decimal places."""
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    validate_magnitude(value)
    _check_precision(value)


def _validate_share(value: Decimal) -> None:
    """Participant share: zero allowed (a member can opt out), at most 2 dp."""
    if value < Decimal("0"):
        raise ValidationError("Share must not be negative.")
    validate_magnitude(value)
    _check_precision(value)


def _has_duplicates(member_ids: list) -> bool:
    return len(set(member_ids)) != len(member_ids)


# ── Sub-schemas ────────────────────────────────────────────────────────────

class ParticipantSchema(Schema):
    """One entry of `participants` for splitType='custom'."""

    member_id = MemberIdField(required=True, data_key="memberId")
    amount = fields.Decimal(required=True, allow_nan=False, validate=_validate_share)
    paid = fields.Bool(load_default=False)

    @post_load
    def make_participant(self, data: dict, **kwargs) -> SplitParticipant:
        return SplitParticipant(**data)


class PercentageShareSchema(Schema):
    """One entry of `percentages` for splitType='percentage'."""

    member_id = MemberIdField(required=True, data_key="memberId")
    percentage = fields.Decimal(
        required=True,
        allow_nan=False,
        validate=validate.Range(min=Decimal("0"), max=Decimal("100")),
    )


# ── Expense ────────────────────────────────────────────────────────────────

class ExpenseSchema(Schema):
    """
    Split mode behaviour:
      - 'custom'     → `participants` required, each with its share.
      - 'equal'      → `participants` must NOT be sent. `participantIds` is
                       optional; without it the amount is divided among all
                       active members.
      - 'percentage' → `percentages` required ({memberId, percentage}).
    """

    expense_id = fields.Str(
        required=True,
        data_key="expenseId",
        validate=validate.Length(min=1),
    )
    paid_by = MemberIdField(required=True, data_key="paidBy")
    amount = fields.Decimal(required=True, allow_nan=False, validate=_validate_monetary_amount)

    split_mode = fields.Enum(
        SplitMode,
        by_value=True,
        data_key="splitType",
        load_default=SplitMode.CUSTOM,
    )
    participants = fields.List(fields.Nested(ParticipantSchema), load_default=None)
    participant_ids = fields.List(
        MemberIdField(),
        data_key="participantIds",
        load_default=None,
        validate=validate.Length(min=1),
    )
    percentages = fields.List(fields.Nested(PercentageShareSchema), load_default=None)

    description = fields.Str(load_default="", validate=validate.Length(max=255))
    is_deleted = fields.Bool(data_key="isDeleted", load_default=False)

    @validates_schema
    def validate_split_shape(self, data: dict, **kwargs) -> None:
        mode = data.get("split_mode", SplitMode.CUSTOM)
        participants = data.get("participants")
        participant_ids = data.get("participant_ids")
        percentages = data.get("percentages")

        if mode == SplitMode.EQUAL:
            if participants is not None:
                raise ValidationError(
                    ErrorCode.SPLITS_SENT_FOR_EQUAL_MODE,
                    field_name="participants",
                )
            if participant_ids is not None and _has_duplicates(participant_ids):
                raise ValidationError(
                    ErrorCode.DUPLICATE_SPLIT_USER,
                    field_name="participantIds",
                )

        elif mode == SplitMode.PERCENTAGE:
            if not percentages:
                raise ValidationError(
                    "percentages is required when splitType is 'percentage'.",
                    field_name="percentages",
                )
            if _has_duplicates([p["member_id"] for p in percentages]):
                raise ValidationError(
                    ErrorCode.DUPLICATE_SPLIT_USER,
                    field_name="percentages",
                )

        else:
            if not participants:
                raise ValidationError(
                    "participants is required when splitType is 'custom'.",
                    field_name="participants",
                )
            if _has_duplicates([p.member_id for p in participants]):
                raise ValidationError(
                    ErrorCode.DUPLICATE_SPLIT_USER,
                    field_name="participants",
                )
