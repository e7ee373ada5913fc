"""
Billing collaborator.

The billing linkage adapter only needs to create a customer at the billing
provider; checkout and webhook mechanics live outside orgpass.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import stripe
import structlog

from orgpass.config import settings
from orgpass.errors import BillingGatewayError

logger = structlog.get_logger(__name__)


@dataclass
class BillingCustomer:
    """Customer created at the billing provider."""

    customer_id: str
    email: str
    name: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)


class BillingGatewayInterface(ABC):
    """Abstract interface for billing provider operations."""

    @abstractmethod
    async def create_customer(
        self,
        name: str,
        email: str,
        metadata: dict[str, str] | None = None,
    ) -> BillingCustomer:
        """Create a customer and return its provider id."""
        ...


class StripeBillingGateway(BillingGatewayInterface):
    """Billing gateway backed by the official Stripe API."""

    def __init__(self, api_key: Optional[str] = None, api_version: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.STRIPE_API_KEY
        self.api_version = api_version or settings.STRIPE_API_VERSION
        stripe.api_key = self.api_key
        stripe.api_version = self.api_version

        logger.info(
            "stripe_gateway_initialized",
            is_test_mode=self.api_key.startswith("sk_test_"),
        )

    async def _run_in_executor(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        """Run a synchronous Stripe API call in an executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: func(*args, **kwargs))

    async def create_customer(
        self,
        name: str,
        email: str,
        metadata: dict[str, str] | None = None,
    ) -> BillingCustomer:
        try:
            logger.info("creating_stripe_customer", email=email, name=name)

            customer_data: dict[str, Any] = {
                "email": email,
                "metadata": metadata or {},
            }
            if name:
                customer_data["name"] = name

            stripe_customer = await self._run_in_executor(stripe.Customer.create, **customer_data)

            logger.info("stripe_customer_created", customer_id=stripe_customer.id, email=email)
            return BillingCustomer(
                customer_id=stripe_customer.id,
                email=stripe_customer.email or email,
                name=stripe_customer.name,
                metadata=dict(stripe_customer.metadata or {}),
            )

        except stripe.StripeError as e:
            logger.error("stripe_customer_create_failed", email=email, error=str(e))
            raise BillingGatewayError(
                f"Failed to create Stripe customer: {str(e)}",
                details={"email": email},
                original_error=e,
            ) from e
