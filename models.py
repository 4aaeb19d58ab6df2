from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from enum import Enum
from typing import Literal, Optional
from datetime import datetime, timezone
from decimal import Decimal


MAX_CLIENT_ID = 2**16 - 1
MAX_EVENT_ID = 2**32 - 1
AMOUNT_DECIMAL_PLACES = 4
AMOUNT_MAX_DIGITS = 28


class EventType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"

    @property
    def carries_amount(self) -> bool:
        """Deposits and withdrawals move money and open a new transaction id."""
        return self in (EventType.deposit, EventType.withdrawal)


class Event(BaseModel):
    """A validated ledger event.

    Deposits and withdrawals carry an amount; disputes, resolves and
    chargebacks only reference the ``tx`` of an earlier deposit.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    type: EventType = Field(..., description="Event type")
    client: int = Field(
        ...,
        ge=0,
        le=MAX_CLIENT_ID,
        description="Client identifier"
    )
    tx: int = Field(
        ...,
        ge=0,
        le=MAX_EVENT_ID,
        description="Transaction identifier, globally unique for deposits and withdrawals"
    )
    amount: Optional[Decimal] = Field(
        None,
        max_digits=AMOUNT_MAX_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        validate_default=True,
        description="Amount for deposits and withdrawals"
    )

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def strip_amount(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator('amount')
    @classmethod
    def validate_amount_presence(cls, v, info: ValidationInfo):
        event_type = info.data.get('type')
        if event_type is None:
            return v
        if event_type.carries_amount:
            if v is None:
                raise ValueError(f'Amount is required for {event_type.value} events')
            return v
        # references to an earlier deposit never carry their own amount
        return None


class AccountSnapshot(BaseModel):
    """Read-only view of one client's balances."""

    model_config = ConfigDict(frozen=True)

    client: int = Field(..., description="Client identifier")
    available: Decimal = Field(..., description="Funds available for withdrawal")
    held: Decimal = Field(..., description="Funds held by open disputes")
    total: Decimal = Field(..., description="Available plus held funds")
    locked: bool = Field(..., description="Whether a chargeback froze the account")


class EventAcceptedResponse(BaseModel):
    status: Literal["accepted"] = Field(..., description="Admission status")
    client: int = Field(..., description="Client the event was routed to")
    tx: int = Field(..., description="Transaction identifier")
    timestamp: datetime = Field(..., description="Admission timestamp")


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Error description")
    error_code: str = Field(..., description="Machine-readable error code")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Error timestamp"
    )


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    accounts_count: int = Field(..., description="Number of accounts in the ledger")
    events_admitted: int = Field(..., description="Number of distinct transaction ids admitted")
