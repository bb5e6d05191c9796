"""
Application Errors

User-facing failure messages. Whatever goes wrong underneath (bad key,
cipher error, storage outage) the caller gets one clear message for the
operation it attempted, with the original exception kept for logs.

DESIGN DECISION: No partial-success states. If an operation raises, the
record must be treated as not saved / not loaded.
"""

from enum import Enum
from typing import Optional


class ErrorMessages(str, Enum):
    """Message catalogue, one entry per failing operation."""
    NOT_AUTHENTICATED = "You need to be signed in to do this"
    ENCRYPTION_UNAVAILABLE = "Encryption is not configured; your data cannot be loaded or saved"
    TRANSACTION_CREATE_FAILED = "Could not create the transaction"
    TRANSACTION_UPDATE_FAILED = "Could not update the transaction"
    TRANSACTION_DELETE_FAILED = "Could not delete the transaction"
    BANK_ACCOUNT_CREATE_FAILED = "Could not create the bank account"
    BANK_ACCOUNT_UPDATE_FAILED = "Could not update the bank account"
    BANK_ACCOUNT_DELETE_FAILED = "Could not delete the bank account"
    CREDIT_CARD_CREATE_FAILED = "Could not create the credit card"
    CREDIT_CARD_UPDATE_FAILED = "Could not update the credit card"
    CREDIT_CARD_DELETE_FAILED = "Could not delete the credit card"
    BUDGET_UPDATE_FAILED = "Could not update the budget"
    RECURRING_CREATE_FAILED = "Could not create the recurring entry"
    RECURRING_UPDATE_FAILED = "Could not update the recurring entry"
    RECURRING_DELETE_FAILED = "Could not delete the recurring entry"
    RECORDS_LOAD_FAILED = "Could not load your records"
    GENERIC_ERROR = "An unexpected error occurred"


# table -> message prefix used to pick "<PREFIX>_<OPERATION>_FAILED"
_TABLE_PREFIXES = {
    "transactions": "TRANSACTION",
    "transaction_items": "TRANSACTION",
    "bank_accounts": "BANK_ACCOUNT",
    "credit_cards": "CREDIT_CARD",
    "category_budgets": "BUDGET",
    "recurring_templates": "RECURRING",
}


class AppError(Exception):
    """
    An operation failed; carries the user-facing message.

    Attributes:
        key: Which ErrorMessages entry applies
        original_error: The underlying exception, for logging
    """

    def __init__(self, key: ErrorMessages, original_error: Optional[BaseException] = None):
        super().__init__(key.value)
        self.key = key
        self.original_error = original_error


def message_for(table: str, operation: str) -> ErrorMessages:
    """
    Pick the message for a failed operation on a table.

    Falls back to GENERIC_ERROR when there's no specific entry.
    """
    if operation == "select":
        return ErrorMessages.RECORDS_LOAD_FAILED
    prefix = _TABLE_PREFIXES.get(table)
    if prefix is None:
        return ErrorMessages.GENERIC_ERROR
    return ErrorMessages.__members__.get(
        f"{prefix}_{operation.upper()}_FAILED",
        ErrorMessages.GENERIC_ERROR,
    )


def get_error_message(error: BaseException) -> str:
    """Message to show the user for any exception."""
    if isinstance(error, AppError):
        return str(error)
    if str(error) == "Not authenticated":
        return ErrorMessages.NOT_AUTHENTICATED.value
    return ErrorMessages.GENERIC_ERROR.value
