from __future__ import annotations

from typing import Dict, List


TRANSACTION_TYPES: List[str] = ["sale", "purchase", "lease", "transfer", "other"]

TRANSACTION_STATUS_OPTIONS: List[str] = ["pending", "completed", "cancelled", "in_progress"]

PAYMENT_METHODS: List[str] = ["credit_card", "bank_transfer", "cash", "check", "paypal", "other"]

CURRENCIES: List[str] = ["USD", "EUR", "GBP", "CAD", "AUD", "JPY", "CNY"]

TRANSACTION_TYPE_LABELS: Dict[str, str] = {
    "sale": "Sale",
    "purchase": "Purchase",
    "lease": "Lease",
    "transfer": "Transfer",
    "other": "Other",
}

TRANSACTION_STATUS_LABELS: Dict[str, str] = {
    "pending": "Pending",
    "completed": "Completed",
    "cancelled": "Cancelled",
    "in_progress": "In Progress",
}

PAYMENT_METHOD_LABELS: Dict[str, str] = {
    "credit_card": "Credit Card",
    "bank_transfer": "Bank Transfer",
    "cash": "Cash",
    "check": "Check",
    "paypal": "PayPal",
    "other": "Other",
}

CURRENCY_LABELS: Dict[str, str] = {
    "USD": "US Dollar (USD)",
    "EUR": "Euro (EUR)",
    "GBP": "British Pound (GBP)",
    "CAD": "Canadian Dollar (CAD)",
    "AUD": "Australian Dollar (AUD)",
    "JPY": "Japanese Yen (JPY)",
    "CNY": "Chinese Yuan (CNY)",
}

CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "C$",
    "AUD": "A$",
    "JPY": "¥",
    "CNY": "¥",
}

# Currencies rendered without minor units.
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY"})

# Long-text preview thresholds, in characters, per rendering context.
TRUNCATION_THRESHOLDS: Dict[str, int] = {
    "list": 50,
    "animal": 30,
    "health": 150,
}

DETAIL_FIELDS = ("details", "delivery_instructions", "terms_and_conditions", "special_conditions")

RECENT_TRANSACTIONS_CAP = 5
DOCUMENT_PREVIEW_COUNT = 2
PERCENTAGE_DECIMALS = 1
