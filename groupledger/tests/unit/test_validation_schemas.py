"""
tests/unit/test_validation_schemas.py — Unit tests for all marshmallow schemas.

What this file proves:
  - Every schema accepts valid input without raising
  - Every schema rejects invalid input with the correct ValidationError
  - Field-level rules (type, enum, decimal precision, split shape) are enforced by schemas
  - Cross-entity rules (membership, split sums) are NOT tested here: they belong in services
  - app_error_from_validation maps marshmallow errors onto registered error codes
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from marshmallow import ValidationError

from groupledger.app.errors import AppError, ErrorCode, app_error_from_validation
from groupledger.app.models.balance import MemberBalance
from groupledger.app.models.expense import Member, SplitMode, SplitParticipant
from groupledger.app.schemas.balance_schema import BalanceInputSchema
from groupledger.app.schemas.expense_schema import ExpenseSchema
from groupledger.app.schemas.group_schema import GroupLedgerSchema, MemberSchema


# ═══════════════════════════════════════════════════════════════════════════
# BalanceInputSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestBalanceInputSchema:

    def _load(self, data: dict):
        return BalanceInputSchema().load(data)

    def test_valid_payload_loads_member_balance(self):
        result = self._load({"memberId": "A", "displayName": "Alice", "balance": "-12.345"})

        assert result == MemberBalance("A", "Alice", Decimal("-12.345"))

    def test_numeric_balance_is_decimal(self):
        result = self._load({"memberId": 7, "displayName": "Bob", "balance": 0.1})

        assert isinstance(result.balance, Decimal)
        assert result.balance == Decimal("0.1")

    def test_member_id_is_stripped(self):
        assert self._load({"memberId": "  A ", "displayName": "x", "balance": 0}).member_id == "A"

    @pytest.mark.parametrize("member_id", ["", "   ", 0, -3, 1.5, None, ["A"], False])
    def test_invalid_member_id(self, member_id):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"memberId": member_id, "displayName": "x", "balance": 0})

        assert "memberId" in exc_info.value.messages

    @pytest.mark.parametrize("balance", ["abc", "Infinity", None, [], True])
    def test_invalid_balance(self, balance):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"memberId": "A", "displayName": "x", "balance": balance})

        assert "balance" in exc_info.value.messages

    @pytest.mark.parametrize("balance", ["1e15", "-1e15", "1e30", "12345678901234567890123456789"])
    def test_balance_too_large(self, balance):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"memberId": "A", "displayName": "x", "balance": balance})

        assert "balance" in exc_info.value.messages

    def test_balance_just_below_limit(self):
        result = self._load({"memberId": "A", "displayName": "x", "balance": "-999999999999999.99"})

        assert result.balance == Decimal("-999999999999999.99")

    def test_missing_display_name(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"memberId": "A", "balance": 0})

        assert "displayName" in exc_info.value.messages


# ═══════════════════════════════════════════════════════════════════════════
# ExpenseSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestExpenseSchema:

    def _load(self, data: dict):
        return ExpenseSchema().load(data)

    def _custom(self, **overrides) -> dict:
        payload = {
            "expenseId": "e1",
            "paidBy": "alice",
            "amount": "30.00",
            "participants": [
                {"memberId": "alice", "amount": "15.00", "paid": True},
                {"memberId": "bob", "amount": "15.00"},
            ],
        }
        payload.update(overrides)
        return payload

    def test_custom_split_defaults(self):
        result = self._load(self._custom())

        assert result["split_mode"] == SplitMode.CUSTOM
        assert result["amount"] == Decimal("30.00")
        assert result["participants"] == [
            SplitParticipant("alice", Decimal("15.00"), True),
            SplitParticipant("bob", Decimal("15.00"), False),
        ]
        assert result["is_deleted"] is False

    def test_custom_split_requires_participants(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(self._custom(participants=None))

        assert "participants" in exc_info.value.messages

    def test_duplicate_participant_is_rejected(self):
        payload = self._custom(participants=[
            {"memberId": "bob", "amount": "15.00"},
            {"memberId": "bob", "amount": "15.00"},
        ])

        with pytest.raises(ValidationError) as exc_info:
            self._load(payload)

        assert exc_info.value.messages == {"participants": [ErrorCode.DUPLICATE_SPLIT_USER]}

    @pytest.mark.parametrize("amount", ["0", "-1.00", "10.001"])
    def test_invalid_amount(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            self._load(self._custom(amount=amount))

        assert "amount" in exc_info.value.messages

    def test_three_decimal_places_use_precision_code(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(self._custom(amount="10.001"))

        assert exc_info.value.messages["amount"] == [ErrorCode.INVALID_AMOUNT_PRECISION]

    def test_amount_too_large_is_invalid_field(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(self._custom(amount="1E+30"))
        err = app_error_from_validation(exc_info.value)

        assert err.code == ErrorCode.INVALID_FIELD
        assert err.field == "amount"

    def test_share_too_large(self):
        payload = self._custom(participants=[{"memberId": "bob", "amount": "1e20"}])

        with pytest.raises(ValidationError) as exc_info:
            self._load(payload)

        assert "participants" in exc_info.value.messages

    def test_zero_share_is_allowed(self):
        payload = self._custom(participants=[
            {"memberId": "alice", "amount": "30.00"},
            {"memberId": "bob", "amount": "0"},
        ])

        assert self._load(payload)["participants"][1].amount == Decimal("0")

    def test_equal_split_rejects_participants(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(self._custom(splitType="equal"))

        assert exc_info.value.messages == {"participants": [ErrorCode.SPLITS_SENT_FOR_EQUAL_MODE]}

    def test_equal_split_with_participant_ids(self):
        payload = {
            "expenseId": "e2",
            "paidBy": 1,
            "amount": 12,
            "splitType": "equal",
            "participantIds": [1, 2],
        }

        result = self._load(payload)

        assert result["split_mode"] == SplitMode.EQUAL
        assert result["participant_ids"] == [1, 2]
        assert result["participants"] is None

    def test_equal_split_rejects_duplicate_ids(self):
        payload = {"expenseId": "e", "paidBy": 1, "amount": 12, "splitType": "equal", "participantIds": [1, 1]}

        with pytest.raises(ValidationError) as exc_info:
            self._load(payload)

        assert exc_info.value.messages == {"participantIds": [ErrorCode.DUPLICATE_SPLIT_USER]}

    def test_percentage_split_requires_percentages(self):
        payload = {"expenseId": "e", "paidBy": 1, "amount": 12, "splitType": "percentage"}

        with pytest.raises(ValidationError) as exc_info:
            self._load(payload)

        assert "percentages" in exc_info.value.messages

    def test_percentage_out_of_range(self):
        payload = {
            "expenseId": "e",
            "paidBy": 1,
            "amount": 12,
            "splitType": "percentage",
            "percentages": [{"memberId": 1, "percentage": 120}],
        }

        with pytest.raises(ValidationError):
            self._load(payload)

    def test_unknown_split_type(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load(self._custom(splitType="shares"))

        assert "splitType" in exc_info.value.messages


# ═══════════════════════════════════════════════════════════════════════════
# MemberSchema / GroupLedgerSchema
# ═══════════════════════════════════════════════════════════════════════════

class TestGroupLedgerSchema:

    def test_member_defaults_to_active(self):
        assert MemberSchema().load({"memberId": "a", "displayName": "A"}) == Member("a", "A", True)

    def test_expenses_default_to_empty(self):
        result = GroupLedgerSchema().load({"members": [{"memberId": "a", "displayName": "A"}]})

        assert result["expenses"] == []

    def test_members_are_required(self):
        with pytest.raises(ValidationError) as exc_info:
            GroupLedgerSchema().load({"expenses": []})

        assert "members" in exc_info.value.messages

    def test_duplicate_members_are_rejected(self):
        payload = {"members": [
            {"memberId": "a", "displayName": "A"},
            {"memberId": "a", "displayName": "A2"},
        ]}

        with pytest.raises(ValidationError) as exc_info:
            GroupLedgerSchema().load(payload)

        assert exc_info.value.messages == {"members": [ErrorCode.DUPLICATE_MEMBER]}


# ═══════════════════════════════════════════════════════════════════════════
# app_error_from_validation
# ═══════════════════════════════════════════════════════════════════════════

class TestAppErrorFromValidation:

    def _convert(self, schema, payload) -> AppError:
        with pytest.raises(ValidationError) as exc_info:
            schema.load(payload)
        return app_error_from_validation(exc_info.value)

    def test_registered_code_is_kept_with_default_message(self):
        err = self._convert(GroupLedgerSchema(), {"members": [
            {"memberId": "a", "displayName": "A"},
            {"memberId": "a", "displayName": "A"},
        ]})

        assert err.code == ErrorCode.DUPLICATE_MEMBER
        assert err.message == "The same memberId appears more than once."
        assert err.field == "members"
        assert err.http_status == 400

    def test_missing_field_maps_to_missing_field(self):
        err = self._convert(BalanceInputSchema(), {"memberId": "a", "displayName": "A"})

        assert err.code == ErrorCode.MISSING_FIELD
        assert err.field == "balance"

    def test_nested_path_is_dotted(self):
        err = self._convert(GroupLedgerSchema(), {
            "members": [{"memberId": "a", "displayName": "A"}],
            "expenses": [{
                "expenseId": "e1",
                "paidBy": "a",
                "amount": "1.00",
                "participants": [{"memberId": "a", "amount": "1.001"}],
            }],
        })

        assert err.code == ErrorCode.INVALID_AMOUNT_PRECISION
        assert err.field == "expenses.0.participants.0.amount"

    def test_to_dict_envelope(self):
        err = self._convert(BalanceInputSchema(), {"memberId": "a", "displayName": "A", "balance": "x"})

        assert err.to_dict() == {
            "error": {
                "code": ErrorCode.INVALID_FIELD,
                "message": "Not a valid number.",
                "field": "balance",
            }
        }
