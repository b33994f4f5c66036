from typing import Literal, Optional
from decimal import Decimal
import datetime as dt

from pydantic import field_validator, model_validator
from sqlmodel import SQLModel, Field

from utils import normalize_iso_date, utcnow

TransactionType = Literal["income", "expense"]
Frequency = Literal["daily", "weekly", "monthly", "yearly"]


# These classes describe the records the tracker works with.
# They are plain value models (no table=True): the store keeps them in memory
# and the query/analytics code only ever reads them.
class Category(SQLModel):
    """A label for transactions of exactly one type ('income' or 'expense').
    Inactive categories are hidden from default listings but still resolve by id,
    so historical transactions keep their name.
    """
    id: int
    name: str = Field(min_length=1, max_length=50)
    type: TransactionType
    is_active: bool = True
    display_order: int = 0


class Transaction(SQLModel):
    """One income or expense record.
    - 'transaction_date' = the day the money moved (not when the row was created)
    - 'category_id' = optional, None means uncategorized
    """
    id: int = Field(gt=0)
    amount: Decimal = Field(ge=0)  # whole yen in practice
    type: TransactionType
    category_id: Optional[int] = None
    description: str = ""
    transaction_date: dt.date
    payment_method: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)

    @field_validator("transaction_date", mode="before")
    @classmethod
    def normalize_date(cls, v):
        return normalize_iso_date(v)

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v):
        return "" if v is None else v

    # seed files may carry "...Z" timestamps; stored naive UTC like utcnow()
    @field_validator("created_at", "updated_at")
    @classmethod
    def to_naive_utc(cls, v: dt.datetime) -> dt.datetime:
        if v.tzinfo is not None:
            return v.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return v


class Subscription(SQLModel):
    """A recurring charge billed every 'frequency' cycle.
    Subscriptions are never removed: deactivating one clears 'next_payment_date'
    and stamps 'end_date' instead.
    """
    id: int = Field(gt=0)
    name: str = Field(min_length=1, max_length=100)
    amount: Decimal = Field(ge=0)  # charge per billing cycle
    category_id: Optional[int] = None
    frequency: Frequency
    next_payment_date: Optional[dt.date] = None
    is_active: bool = True
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    description: Optional[str] = None

    @field_validator("next_payment_date", "start_date", "end_date", mode="before")
    @classmethod
    def normalize_dates(cls, v):
        if v is None:
            return None
        return normalize_iso_date(v)

    @model_validator(mode="after")
    def require_payment_date_when_active(self):
        if self.is_active and self.next_payment_date is None:
            raise ValueError("next_payment_date is required for an active subscription")
        return self
