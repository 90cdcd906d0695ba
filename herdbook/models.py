from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


DetailField = Literal["details", "delivery_instructions", "terms_and_conditions", "special_conditions"]


def _to_str_id(value):
    if value is None:
        return value
    return str(value)


class AttachedDocument(BaseModel):
    id: str
    name: str
    url: str
    size: int = Field(0, description="Size in bytes")
    type: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return _to_str_id(value)


class Transaction(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Identifier assigned by the remote API")
    transaction_type: str = "other"
    price: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    total_amount: Decimal = Field(..., description="Authoritative total as returned by the API")
    deposit_amount: Optional[Decimal] = None
    balance_due: Optional[Decimal] = None
    insurance_amount: Optional[Decimal] = None
    currency: str = Field("USD", description="ISO 4217 code")
    transaction_date: Optional[str] = None
    delivery_date: Optional[str] = None
    payment_due_date: Optional[str] = None
    transaction_status: str = "unknown"
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None

    seller_id: Optional[int] = None
    seller_name: Optional[str] = None
    seller_email: Optional[str] = None
    seller_phone: Optional[str] = None
    seller_company: Optional[str] = None
    buyer_id: Optional[int] = None
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None
    buyer_phone: Optional[str] = None
    buyer_company: Optional[str] = None

    details: Optional[str] = None
    delivery_instructions: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    special_conditions: Optional[str] = None

    insurance_policy_number: Optional[str] = None
    health_certificate_number: Optional[str] = None
    transport_license_number: Optional[str] = None

    attached_documents: List[AttachedDocument] = Field(default_factory=list)

    animal_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("id", "animal_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _to_str_id(value)

    @field_validator("transaction_status", mode="before")
    @classmethod
    def default_status(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return "unknown"
        return value

    @field_validator("attached_documents", mode="before")
    @classmethod
    def null_documents(cls, value):
        return value or []


class TransactionFormData(BaseModel):
    """Create/update payload. Unset fields are left out of PATCH bodies."""

    transaction_type: Optional[str] = None
    price: Optional[Union[Decimal, str]] = None
    tax_amount: Optional[Union[Decimal, str]] = None
    currency: Optional[str] = None
    transaction_date: Optional[str] = None
    delivery_date: Optional[str] = None
    details: Optional[str] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    deposit_amount: Optional[Union[Decimal, str]] = None
    payment_due_date: Optional[str] = None
    transaction_status: Optional[str] = None
    seller_id: Optional[Union[int, str]] = None
    buyer_id: Optional[Union[int, str]] = None
    seller_name: Optional[str] = None
    buyer_name: Optional[str] = None
    delivery_instructions: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    special_conditions: Optional[str] = None


class SummaryOverview(BaseModel):
    total_transactions: int = 0
    completed_transactions: int = 0
    total_value: Optional[str] = None
    pending_amount: Optional[str] = None
    average_transaction_value: Optional[str] = None
    highest_transaction: Optional[str] = None
    lowest_transaction: Optional[str] = None

    @field_validator(
        "total_value",
        "pending_amount",
        "average_transaction_value",
        "highest_transaction",
        "lowest_transaction",
        mode="before",
    )
    @classmethod
    def decimal_as_string(cls, value):
        if value is None:
            return value
        return str(value)

    @field_validator("total_transactions", "completed_transactions", mode="before")
    @classmethod
    def null_count(cls, value):
        return value or 0


class MonthlyTrend(BaseModel):
    month: Optional[str] = None
    transaction_count: Optional[int] = None
    total_amount: Optional[Union[str, float]] = None


class RecentTransaction(BaseModel):
    id: str
    transaction_type: str = "other"
    total_amount: Optional[str] = None
    balance_due: Optional[str] = None
    transaction_date: Optional[str] = None
    transaction_status: Optional[str] = None
    seller_name: Optional[str] = None
    buyer_name: Optional[str] = None
    payment_progress: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        return _to_str_id(value)

    @field_validator("total_amount", "balance_due", mode="before")
    @classmethod
    def decimal_as_string(cls, value):
        if value is None:
            return value
        return str(value)


class TransactionSummary(BaseModel):
    overview: SummaryOverview = Field(default_factory=SummaryOverview)
    status_distribution: Dict[str, int] = Field(default_factory=dict)
    monthly_trends: List[MonthlyTrend] = Field(default_factory=list)
    recent_transactions: List[RecentTransaction] = Field(default_factory=list)
    currency: str = "USD"
    last_updated: Optional[str] = None

    @field_validator("status_distribution", "monthly_trends", "recent_transactions", mode="before")
    @classmethod
    def null_collections(cls, value, info):
        if value is None:
            return {} if info.field_name == "status_distribution" else []
        return value
