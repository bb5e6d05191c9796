"""
Field Schema Registry

Declares, per table, which fields are encrypted at rest and the scalar type
they are restored to after decryption.

DESIGN DECISION: The registry is an explicit immutable object built at startup
and handed to the row transform, instead of a module-level dict every caller
reaches into. Tests can build a registry of their own.
"""

from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional


class FieldType(str, Enum):
    """Scalar type a sensitive field is restored to."""
    NUMBER = "number"
    STRING = "string"


class FieldSchemaRegistry:
    """
    Read-only mapping of table -> {field -> FieldType}.

    A table that is not registered has no sensitive fields.
    """

    def __init__(self, tables: Mapping[str, Mapping[str, str]]):
        frozen = {}
        for table, fields in tables.items():
            frozen[table] = MappingProxyType(
                {name: FieldType(kind) for name, kind in fields.items()}
            )
        self._tables = MappingProxyType(frozen)

    def schema_for(self, table: str) -> Optional[Mapping[str, FieldType]]:
        """Return the sensitive-field mapping for a table, or None."""
        return self._tables.get(table)

    def is_sensitive(self, table: str, field: str) -> bool:
        schema = self.schema_for(table)
        return schema is not None and field in schema

    @property
    def tables(self) -> list[str]:
        return sorted(self._tables)

    def __contains__(self, table: object) -> bool:
        return table in self._tables

    def __iter__(self) -> Iterator[str]:
        return iter(self._tables)

    def __len__(self) -> int:
        return len(self._tables)

    def __repr__(self) -> str:
        return f"FieldSchemaRegistry(tables={self.tables})"


ENCRYPTED_FIELDS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "transactions": {
        "amount": "number",
        "description": "string",
        "notes": "string",
    },
    "transaction_items": {
        "amount": "number",
        "description": "string",
    },
    "bank_accounts": {
        "balance": "number",
    },
    "credit_cards": {
        "credit_limit": "number",
        "current_bill": "number",
    },
    "recurring_templates": {
        "amount": "number",
        "description": "string",
    },
    "financial_goals": {
        "savings_goal": "number",
        "invested_amount": "number",
        "total_debts": "number",
        "dollar_rate": "number",
        "notes": "string",
    },
    "investments": {
        "average_price": "number",
        "current_price": "number",
        "quantity": "number",
        "notes": "string",
    },
    "investment_history": {
        "price": "number",
        "total_value": "number",
    },
    "category_budgets": {
        "monthly_budget": "number",
    },
})


def build_default_registry() -> FieldSchemaRegistry:
    """Registry for the application's record types."""
    return FieldSchemaRegistry(ENCRYPTED_FIELDS)
