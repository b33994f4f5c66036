"""Pydantic/SQLModel schemas for query parameters and payloads.

Everything the engine receives passes through one of these first; the
query/analytics functions assume their input is already valid.
"""
from typing import Literal, Optional
from decimal import Decimal
import datetime as dt

from sqlmodel import SQLModel, Field
import pydantic
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from models import Frequency, TransactionType
from utils import normalize_iso_date

DESCRIPTION_MAX_LEN = 500
SEARCH_MAX_LEN = 100
MAX_PAGE_SIZE = 100


def validation_details(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten a ValidationError into JSON-safe {field, message} pairs."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]


class TransactionListParams(BaseModel):
    """Query parameters of GET /api/transactions.

    Field aliases match the wire names ('from', 'to', 'category_id', ...).
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Optional[Literal["income", "expense"]] = None
    category_id: Optional[int] = pydantic.Field(default=None, gt=0)
    date_from: Optional[dt.date] = pydantic.Field(default=None, alias="from")
    date_to: Optional[dt.date] = pydantic.Field(default=None, alias="to")
    search: Optional[str] = pydantic.Field(default=None, min_length=1, max_length=SEARCH_MAX_LEN)
    sort_by: Literal["transactionDate", "amount", "createdAt"] = "transactionDate"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = pydantic.Field(default=1, ge=1)
    limit: int = pydantic.Field(default=20, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def normalize_dates(cls, v):
        if v is None:
            return None
        return normalize_iso_date(v)

    def filters(self) -> dict:
        return {
            "from": self.date_from,
            "to": self.date_to,
            "type": self.type,
            "category_id": self.category_id,
            "search": self.search,
        }

    def sort(self) -> dict:
        return {"sort_by": self.sort_by, "sort_order": self.sort_order}


class TransactionFieldsMixin:
    """Shared validators for description and date normalization."""
    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, v):
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("transaction_date", mode="before")
    @classmethod
    def normalize_date(cls, v):
        if v is None:
            return None
        return normalize_iso_date(v)


class TransactionCreate(TransactionFieldsMixin, SQLModel):
    """Payload for creating a transaction."""
    amount: Decimal = Field(gt=0)
    type: TransactionType
    category_id: Optional[int] = Field(default=None, gt=0)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LEN)
    transaction_date: dt.date
    payment_method: Optional[str] = Field(default=None, max_length=50)


class TransactionUpdate(TransactionFieldsMixin, SQLModel):
    """Partial update payload for transactions. Only the fields sent are changed."""
    amount: Optional[Decimal] = Field(default=None, gt=0)
    type: Optional[TransactionType] = None
    category_id: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LEN)
    transaction_date: Optional[dt.date] = None
    payment_method: Optional[str] = Field(default=None, max_length=50)


class SubscriptionFieldsMixin:
    """Shared validators for subscription names and dates."""
    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("next_payment_date", "start_date", mode="before")
    @classmethod
    def normalize_dates(cls, v):
        if v is None:
            return None
        return normalize_iso_date(v)


class SubscriptionCreate(SubscriptionFieldsMixin, SQLModel):
    """Payload for creating a subscription. Active ones need a next payment date."""
    name: str = Field(min_length=1, max_length=100)
    amount: Decimal = Field(gt=0)
    frequency: Frequency
    category_id: Optional[int] = Field(default=None, gt=0)
    next_payment_date: Optional[dt.date] = None
    start_date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LEN)
    is_active: bool = True

    @model_validator(mode="after")
    def require_payment_date_when_active(self):
        if self.is_active and self.next_payment_date is None:
            raise ValueError("next_payment_date is required for an active subscription")
        return self


class SubscriptionUpdate(SubscriptionFieldsMixin, SQLModel):
    """Partial update payload for subscriptions.
    The merged record is validated again, so an active subscription cannot lose its date.
    """
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(default=None, gt=0)
    frequency: Optional[Frequency] = None
    category_id: Optional[int] = Field(default=None, gt=0)
    next_payment_date: Optional[dt.date] = None
    start_date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LEN)
    is_active: Optional[bool] = None
