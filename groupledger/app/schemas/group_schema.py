"""
schemas/group_schema.py — Marshmallow schemas for a whole group ledger.

Payload: {"members": [...], "expenses": [...]}

Validation responsibility:
  - This file: member record shape, DUPLICATE_MEMBER across `members`.
  - services/balance_service.py: every rule that relates an expense to
    the member list (payer / participant membership, split sums).
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, post_load, validate, validates_schema

from groupledger.app.errors import ErrorCode
from groupledger.app.models.expense import Member
from groupledger.app.schemas.balance_schema import MemberIdField
from groupledger.app.schemas.expense_schema import ExpenseSchema


class MemberSchema(Schema):

    member_id = MemberIdField(required=True, data_key="memberId")
    display_name = fields.Str(
        required=True,
        data_key="displayName",
        validate=validate.Length(min=1, max=100),
    )
    # Members who left keep their history but no longer take part in
    # balances or equal splits.
    is_active = fields.Bool(data_key="isActive", load_default=True)

    @post_load
    def make_member(self, data: dict, **kwargs) -> Member:
        return Member(**data)


class GroupLedgerSchema(Schema):

    members = fields.List(fields.Nested(MemberSchema), required=True)
    expenses = fields.List(fields.Nested(ExpenseSchema), load_default=list)

    @validates_schema
    def validate_unique_members(self, data: dict, **kwargs) -> None:
        member_ids = [m.member_id for m in data["members"]]
        if len(set(member_ids)) != len(member_ids):
            raise ValidationError(ErrorCode.DUPLICATE_MEMBER, field_name="members")
