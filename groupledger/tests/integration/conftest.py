"""
tests/integration/conftest.py — Shared fixtures for end-to-end settlement tests.

Integration tests drive the public boundary functions with raw payloads, the
way a web layer would: JSON-like dicts in, response dicts (or AppError) out.
Every test runs against TestingConfig so the developer's .env never leaks in.
"""

from __future__ import annotations

import pytest

from groupledger.app import configure


@pytest.fixture(scope="session")
def config():
    """TestingConfig, validated and with package logging applied."""
    return configure("testing")


@pytest.fixture
def members() -> list[dict]:
    return [
        {"memberId": "u1", "displayName": "Alex"},
        {"memberId": "u2", "displayName": "Sam"},
        {"memberId": "u3", "displayName": "Jordan"},
    ]


@pytest.fixture
def trip_payload(members) -> dict:
    """
    A weekend trip:
      - Alex pays dinner 1200, split equally (400 each).
      - Sam pays the taxi 300, split between Sam and Jordan.
      - Jordan pays for snacks 90 by percentage 50/25/25.
      - A duplicate hotel booking (900) was deleted.
    """
    return {
        "members": members,
        "expenses": [
            {
                "expenseId": "dinner",
                "paidBy": "u1",
                "amount": "1200.00",
                "splitType": "equal",
            },
            {
                "expenseId": "taxi",
                "paidBy": "u2",
                "amount": "300.00",
                "splitType": "equal",
                "participantIds": ["u2", "u3"],
            },
            {
                "expenseId": "snacks",
                "paidBy": "u3",
                "amount": "90.00",
                "splitType": "percentage",
                "percentages": [
                    {"memberId": "u1", "percentage": 50},
                    {"memberId": "u2", "percentage": 25},
                    {"memberId": "u3", "percentage": 25},
                ],
            },
            {
                "expenseId": "hotel-dup",
                "paidBy": "u2",
                "amount": "900.00",
                "participants": [{"memberId": "u1", "amount": "900.00"}],
                "isDeleted": True,
            },
        ],
    }
