"""Billing payload schemas consumed by the billing linkage adapter"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class LineItem(BaseModel):
    """Priced line of a plan"""

    id: str = Field(..., min_length=1)
    type: Literal["flat", "per_seat", "metered"]


class Price(BaseModel):
    id: str = Field(..., min_length=1)
    line_items: List[LineItem] = Field(default_factory=list)


class VariantQuantity(BaseModel):
    variant_id: str
    quantity: int


class CheckoutSessionPayload(BaseModel):
    """Checkout session request passed to the billing provider"""

    return_url: str
    price: Price
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    attached_entity_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    variant_quantities: List[VariantQuantity] = Field(default_factory=list)


class CustomerCreateParams(BaseModel):
    name: str
    email: str
    metadata: Dict[str, str] = Field(default_factory=dict)


class CustomerAddress(BaseModel):
    city: Optional[str] = None
    country: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    postal_code: Optional[str] = None
    state: Optional[str] = None


class CustomerDetails(BaseModel):
    address: Optional[CustomerAddress] = None
    email: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None


SubscriptionStatus = Literal[
    "active",
    "trialing",
    "past_due",
    "canceled",
    "unpaid",
    "incomplete",
    "incomplete_expired",
    "paused",
]


class UpsertSubscriptionParams(BaseModel):
    """Subscription state produced by the billing provider's webhook handler"""

    customer_details: Optional[CustomerDetails] = None
    targeted_account_id: Optional[str] = None
    target_customer_id: str
    target_subscription_id: str
    active: bool
    status: SubscriptionStatus
    billing_provider: Literal["stripe", "lemon-squeezy"] = "stripe"
    cancel_at_period_end: bool = False
    currency: str
    period_starts_at: str
    period_ends_at: str
    trial_starts_at: Optional[str] = None
    trial_ends_at: Optional[str] = None
