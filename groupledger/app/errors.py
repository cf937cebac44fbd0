"""
errors.py — AppError base class and error code registry.

Every error raised by groupledger must use a code defined here.
Do not raise strings or generic exceptions from service or schema code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - http_status is the status a web layer should answer with; the services
    themselves never speak HTTP.
"""

from __future__ import annotations

from marshmallow import ValidationError


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which input field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent to callers.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    DUPLICATE_MEMBER           = "DUPLICATE_MEMBER"
    DUPLICATE_SPLIT_USER       = "DUPLICATE_SPLIT_USER"
    SPLITS_SENT_FOR_EQUAL_MODE = "SPLITS_SENT_FOR_EQUAL_MODE"
    INVALID_SPLIT_PERCENTAGES  = "INVALID_SPLIT_PERCENTAGES"

    # ── Business Rule Violations (422) ────────────────────────────────────
    PAYER_NOT_MEMBER           = "PAYER_NOT_MEMBER"
    SPLIT_USER_NOT_MEMBER      = "SPLIT_USER_NOT_MEMBER"
    SPLIT_SUM_MISMATCH         = "SPLIT_SUM_MISMATCH"
    UNBALANCED_LEDGER          = "UNBALANCED_LEDGER"      # strict mode only

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a successful result in the `warnings`
# array. They do not block the computation.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Sum of member balances is not zero. Transfers are still suggested for
    # the part that can be matched; the residual stays in `balances`.
    UNBALANCED_LEDGER = "UNBALANCED_LEDGER"


_DEFAULT_MESSAGES = {
    ErrorCode.INVALID_AMOUNT_PRECISION: "Amount must have at most 2 decimal places.",
    ErrorCode.DUPLICATE_MEMBER: "The same memberId appears more than once.",
    ErrorCode.DUPLICATE_SPLIT_USER: "The same memberId appears more than once in the participants array.",
    ErrorCode.INVALID_SPLIT_PERCENTAGES: "Split percentages must add up to exactly 100.",
    ErrorCode.SPLITS_SENT_FOR_EQUAL_MODE: "Do not send a participants array when splitType is 'equal'.",
}


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself
    (e.g. INVALID_AMOUNT_PRECISION raised as ValidationError in schemas).
    """
    return _DEFAULT_MESSAGES.get(code, "Invalid input.")


def _first_error(messages, path: list[str]) -> tuple[list[str], str]:
    """
    Walks a marshmallow messages structure depth-first and returns the path
    and text of the first leaf message.

    Nested schemas produce {"expenses": {0: {"amount": ["..."]}}}; list fields
    produce {"participants": {1: ["..."]}}. Integer keys are list indexes.
    """
    if isinstance(messages, dict):
        for key, value in messages.items():
            next_path = path if key == "_schema" else path + [str(key)]
            return _first_error(value, next_path)
        return path, "Invalid input."
    if isinstance(messages, list):
        if not messages:
            return path, "Invalid value."
        return _first_error(messages[0], path)
    return path, str(messages)


def app_error_from_validation(error: ValidationError) -> AppError:
    """
    Converts a marshmallow ValidationError into an AppError (400).

    Only the FIRST error is reported ("one error, not many"). The error code
    from the ValidationError message is used directly if it matches a known
    ErrorCode constant; otherwise INVALID_FIELD, or MISSING_FIELD for
    marshmallow's required-field message.

    The field is reported as a dotted path, e.g. "expenses.0.amount".
    """
    path, raw_message = _first_error(error.messages, [])
    known_codes = {
        value for name, value in vars(ErrorCode).items() if not name.startswith("_")
    }

    if raw_message in known_codes:
        code = raw_message
        message = _code_to_message(code)
    elif raw_message.startswith("Missing data for required field"):
        code = ErrorCode.MISSING_FIELD
        message = raw_message
    else:
        code = ErrorCode.INVALID_FIELD
        message = raw_message

    return AppError(code, message, 400, field=".".join(path) or None)
