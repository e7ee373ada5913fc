"""
Billing linkage for organizations.

Maps an organization to its customer at the billing provider, computes
per-seat quantities for checkout and records subscription state pushed by
the provider's webhook handler. Checkout and webhook mechanics themselves
are handled outside orgpass.
"""

from typing import Any, Callable, Dict, List, Optional, Union

import structlog
from sqlalchemy.orm import Session

from orgpass.clients.billing import BillingGatewayInterface, StripeBillingGateway
from orgpass.database.database import lock_rows, run_in_transaction
from orgpass.database.models import Organization, OrganizationSetting, User
from orgpass.errors import NotFound, ValidationError
from orgpass.results import Result, attempt, attempt_async
from orgpass.schemas import parse_input
from orgpass.schemas.billing import (
    CheckoutSessionPayload,
    LineItem,
    UpsertSubscriptionParams,
    VariantQuantity,
)
from orgpass.services.authorization_service import AuthorizationService
from orgpass.services.membership_service import MembershipService
from orgpass.services.organization_service import OrganizationService

logger = structlog.get_logger(__name__)

CUSTOMER_ID_SETTING = "customer_id"
SUBSCRIPTION_ID_SETTING = "subscription_id"
SUBSCRIPTION_STATUS_SETTING = "subscription_status"


class OrganizationBillingService:
    """
    Billing entity adapter for organizations.

    The customer id is stored as the ``customer_id`` organization setting
    and created lazily on first use.
    """

    def __init__(self, db: Session, gateway: Optional[BillingGatewayInterface] = None):
        """
        Initialize billing service.

        Args:
            db: SQLAlchemy database session
            gateway: Billing provider client, defaults to Stripe
        """
        self.db = db
        self._gateway = gateway
        self.auth = AuthorizationService(db)
        self.organizations = OrganizationService(db)
        self.members = MembershipService(db)

    @property
    def gateway(self) -> BillingGatewayInterface:
        if self._gateway is None:
            self._gateway = StripeBillingGateway()
        return self._gateway

    def require_entity_id(self, organization_id: str) -> str:
        organization = self.organizations.get_organization(organization_id)
        if not organization:
            raise NotFound("Organization not found", details={"organization_id": organization_id})
        return organization.id

    async def get_customer_id(self, organization_id: str, acting_user_id: str) -> Result[str]:
        """
        Return the organization's billing customer id, creating it if needed.

        The customer is created with the organization name, the organization
        email (or the acting user's email when unset) and the organization id
        in its metadata.

        Returns:
            Result with the customer id, or NotFound, Forbidden or
            BillingGatewayError
        """

        async def _get() -> str:
            organization = self.organizations.get_organization(organization_id)
            if not organization:
                raise NotFound("Organization not found", details={"organization_id": organization_id})
            self.auth.require_member(organization_id, acting_user_id)

            customer_id = self.organizations.get_setting(organization_id, CUSTOMER_ID_SETTING)
            if customer_id:
                return customer_id

            user = self.db.query(User).filter(User.id == acting_user_id).first()
            customer = await self.gateway.create_customer(
                name=organization.name,
                email=organization.email or (user.email if user else ""),
                metadata={"organizationId": organization.id},
            )
            stored = self.link_customer_id(organization_id, customer.customer_id).unwrap()
            if stored != customer.customer_id:
                logger.warning(
                    "billing_customer_discarded",
                    organization_id=organization_id,
                    customer_id=customer.customer_id,
                    linked_customer_id=stored,
                )
            return stored

        result = await attempt_async(_get)
        if result.ok:
            logger.info("billing_customer_resolved", organization_id=organization_id)
        else:
            logger.warning(
                "billing_customer_resolution_failed",
                organization_id=organization_id,
                error=result.error.code,
            )
        return result

    def link_customer_id(self, organization_id: str, customer_id: str) -> Result[str]:
        """
        Store the customer id unless the organization already has one.

        The organization row is write-locked while the setting is re-read,
        so when two first calls race the customer stored first is kept and
        returned to both.

        Returns:
            Result with the customer id now linked to the organization
        """

        def _link(db: Session) -> str:
            if not lock_rows(db, Organization, Organization.id == organization_id):
                raise NotFound("Organization not found", details={"organization_id": organization_id})

            existing = db.query(OrganizationSetting).filter(
                OrganizationSetting.organization_id == organization_id,
                OrganizationSetting.name == CUSTOMER_ID_SETTING,
            ).populate_existing().first()
            if existing and existing.value:
                return existing.value
            self.organizations.put_setting(db, organization_id, CUSTOMER_ID_SETTING, customer_id)
            return customer_id

        result = attempt(lambda: run_in_transaction(self.db, _link))
        if result.ok and result.value == customer_id:
            logger.info("billing_customer_linked", organization_id=organization_id, customer_id=customer_id)
        return result

    def set_customer_id(self, organization_id: str, customer_id: str) -> Result[OrganizationSetting]:
        """Store the billing customer id of an organization, replacing any previous one"""

        def _set(db: Session) -> OrganizationSetting:
            self.require_entity_id(organization_id)
            return self.organizations.put_setting(db, organization_id, CUSTOMER_ID_SETTING, customer_id)

        result = attempt(lambda: run_in_transaction(self.db, _set))
        if result.ok:
            logger.info("billing_customer_linked", organization_id=organization_id, customer_id=customer_id)
        return result

    def get_variant_quantities(
        self,
        line_items: List[Union[LineItem, Dict[str, Any]]],
        organization_id: Optional[str],
    ) -> List[VariantQuantity]:
        """
        Quantities for per-seat line items.

        Each per-seat line item is billed for the current member count. Flat
        and metered items are left to the provider.

        Raises:
            ValidationError: Malformed line item, or per-seat pricing without
                an organization
        """
        quantities = []
        seats = None
        for raw in line_items:
            item = raw if isinstance(raw, LineItem) else parse_input(LineItem, **raw)
            if item.type != "per_seat":
                continue
            if not organization_id:
                raise ValidationError("An organization is required when using per-seat pricing")
            if seats is None:
                seats = self.members.count_members(organization_id)
            quantities.append(VariantQuantity(variant_id=item.id, quantity=seats))
        return quantities

    def prepare_checkout_session(
        self,
        payload: Union[CheckoutSessionPayload, Dict[str, Any]],
    ) -> Result[CheckoutSessionPayload]:
        """
        Add seat quantities and the organization id to a checkout request.

        Returns:
            Result with a copy of the payload carrying ``variant_quantities``
            and ``metadata.organizationId``, or ValidationError
        """

        def _prepare() -> CheckoutSessionPayload:
            data = payload if isinstance(payload, CheckoutSessionPayload) else parse_input(CheckoutSessionPayload, **payload)
            metadata = dict(data.metadata)
            if data.attached_entity_id:
                metadata["organizationId"] = data.attached_entity_id
            return data.model_copy(update={
                "variant_quantities": self.get_variant_quantities(data.price.line_items, data.attached_entity_id),
                "metadata": metadata,
            })

        return attempt(_prepare)

    def on_subscription_updated(
        self,
        organization_id: str,
        subscription: Union[UpsertSubscriptionParams, Dict[str, Any]],
    ) -> Result[None]:
        """
        Record the subscription state pushed by the billing webhook.

        Stores the subscription id and status, and links the customer id if
        the organization has none yet.
        """

        def _update(db: Session) -> None:
            params = (
                subscription
                if isinstance(subscription, UpsertSubscriptionParams)
                else parse_input(UpsertSubscriptionParams, **subscription)
            )
            self.require_entity_id(organization_id)

            self.organizations.put_setting(db, organization_id, SUBSCRIPTION_ID_SETTING, params.target_subscription_id)
            self.organizations.put_setting(db, organization_id, SUBSCRIPTION_STATUS_SETTING, {
                "status": params.status,
                "active": params.active,
                "cancel_at_period_end": params.cancel_at_period_end,
                "currency": params.currency,
                "period_starts_at": params.period_starts_at,
                "period_ends_at": params.period_ends_at,
                "trial_ends_at": params.trial_ends_at,
                "billing_provider": params.billing_provider,
            })
            if not self.organizations.get_setting(organization_id, CUSTOMER_ID_SETTING):
                self.organizations.put_setting(db, organization_id, CUSTOMER_ID_SETTING, params.target_customer_id)

        result = attempt(lambda: run_in_transaction(self.db, _update))
        if result.ok:
            logger.info("subscription_updated", organization_id=organization_id)
        else:
            logger.warning("subscription_update_failed", organization_id=organization_id, error=result.error.code)
        return result

    def on_subscription_deleted(self, organization_id: str, subscription_id: str) -> Result[bool]:
        """
        Forget a deleted subscription.

        Returns:
            Result with True if the stored subscription matched and was
            removed, False if another (or no) subscription is stored
        """

        def _delete(db: Session) -> bool:
            self.require_entity_id(organization_id)
            stored = db.query(OrganizationSetting).filter(
                OrganizationSetting.organization_id == organization_id,
                OrganizationSetting.name == SUBSCRIPTION_ID_SETTING,
            ).with_for_update().first()
            if not stored or stored.value != subscription_id:
                return False

            db.query(OrganizationSetting).filter(
                OrganizationSetting.organization_id == organization_id,
                OrganizationSetting.name.in_([SUBSCRIPTION_ID_SETTING, SUBSCRIPTION_STATUS_SETTING]),
            ).delete(synchronize_session="fetch")
            return True

        result = attempt(lambda: run_in_transaction(self.db, _delete))
        if result.ok:
            logger.info(
                "subscription_deleted",
                organization_id=organization_id,
                subscription_id=subscription_id,
                removed=result.value,
            )
        return result

    def get_webhook_handlers(self, organization_id: str) -> Dict[str, Callable[..., Result]]:
        """
        Handlers bound to one organization, keyed by webhook callback name.

        Raises:
            NotFound: If the organization does not exist
        """
        self.require_entity_id(organization_id)
        return {
            "on_subscription_updated": lambda subscription: self.on_subscription_updated(organization_id, subscription),
            "on_subscription_deleted": lambda subscription_id: self.on_subscription_deleted(organization_id, subscription_id),
        }
