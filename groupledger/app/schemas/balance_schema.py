"""
schemas/balance_schema.py — Marshmallow schema for raw member balances.

Validation responsibility:
  - This file: presence and type of memberId / displayName / balance.
    Malformed or non-numeric balances are rejected here, before the
    settlement engine runs.
  - services/settlement_service.py:
      - DUPLICATE_MEMBER (400): needs the whole list
      - UNBALANCED_LEDGER (warning): needs the sum of all balances

Balances are NOT precision-checked: they are derived values (an equal split
of 100 between three people) and are quantized by the engine instead. They
are bounded in magnitude (MAX_AMOUNT) so that quantizing and summing them
stays within the default 28-digit Decimal context.

IMPORTANT: Inherits from marshmallow.Schema directly so schemas can be
           instantiated without any application context.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate

from groupledger.app.models.balance import MemberBalance


# Amounts at or above one quadrillion are rejected outright. Shared with
# expense_schema for every monetary field.
MAX_AMOUNT = Decimal("1e15")


def validate_magnitude(value: Decimal) -> None:
    if abs(value) >= MAX_AMOUNT:
        raise ValidationError(f"Amount must be smaller than {MAX_AMOUNT:,f} in absolute value.")


class MemberIdField(fields.Field):
    """
    Opaque member identifier: a non-empty string or a positive integer.

    Booleans are rejected even though bool is an int subclass. Strings are
    stripped; the value is otherwise passed through unchanged.
    """

    default_error_messages = {
        "invalid": "memberId must be a non-empty string or a positive integer.",
    }

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise self.make_error("invalid")
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise self.make_error("invalid")
        elif value < 1:
            raise self.make_error("invalid")
        return value

    def _serialize(self, value, attr, obj, **kwargs):
        return value


class BalanceInputSchema(Schema):
    """
    One {memberId, displayName, balance} record.

    Unknown keys are dropped so ledger output (totalPaid, totalOwed, ...) can
    be passed through without reshaping.
    """

    class Meta:
        unknown = EXCLUDE

    member_id = MemberIdField(required=True, data_key="memberId")

    display_name = fields.Str(
        required=True,
        data_key="displayName",
        validate=validate.Length(min=1, max=100),
    )

    # Signed. Strings like "-12.50" and JSON numbers are both accepted;
    # NaN and infinity are not.
    balance = fields.Decimal(required=True, allow_nan=False, validate=validate_magnitude)

    @post_load
    def make_balance(self, data: dict, **kwargs) -> MemberBalance:
        return MemberBalance(**data)
