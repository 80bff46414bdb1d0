"""
Stripe Billing Service Implementation

Production implementation using the official Stripe Python SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment
    - STRIPE_WEBHOOK_SECRET for webhook verification
    - STRIPE_PREMIUM_PRICE_ID for checkout

Security Notes:
    - Always verify webhook signatures
"""

import json
import logging
from typing import Optional

import stripe

from taptab.core.config import get_settings
from taptab.services.billing.base import BaseBillingService, CheckoutResult

logger = logging.getLogger(__name__)


class StripeBillingService(BaseBillingService):
    """
    Stripe subscription billing.

    Example:
        >>> service = StripeBillingService()
        >>> result = await service.create_checkout_session("owner-1", ok_url, cancel_url)
    """

    def __init__(self):
        """
        Initialize Stripe with API key from settings.

        Raises:
            ValueError: If STRIPE_SECRET_KEY is not configured
        """
        settings = get_settings()

        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        stripe.api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._price_id = settings.stripe_premium_price_id

        logger.info("StripeBillingService initialized")

    @property
    def provider_name(self) -> str:
        return "stripe"

    async def create_checkout_session(
        self,
        user_id: str,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> CheckoutResult:
        if not self._price_id:
            return CheckoutResult(
                success=False,
                error_message="Premium plan is not configured",
                error_code="missing_price",
            )

        try:
            session = stripe.checkout.Session.create(
                mode="subscription",
                line_items=[{"price": self._price_id, "quantity": 1}],
                success_url=success_url,
                cancel_url=cancel_url,
                customer_email=customer_email,
                client_reference_id=user_id,
                metadata={"userId": user_id},
                subscription_data={"metadata": {"userId": user_id}},
            )

            logger.info(f"Stripe: Checkout session created - {session.id} for {user_id}")
            return CheckoutResult(success=True, session_id=session.id, url=session.url)

        except stripe.AuthenticationError as e:
            logger.critical(f"Stripe: Authentication failed - {e}")
            return CheckoutResult(
                success=False,
                error_message="Billing service configuration error",
                error_code="authentication_error",
            )

        except stripe.APIConnectionError as e:
            logger.error(f"Stripe: Connection error - {e}")
            return CheckoutResult(
                success=False,
                error_message="Billing service temporarily unavailable",
                error_code="connection_error",
            )

        except stripe.StripeError as e:
            logger.error(f"Stripe: Error - {e}")
            return CheckoutResult(
                success=False,
                error_message="Could not start checkout",
                error_code="stripe_error",
            )

    async def verify_webhook(self, payload: bytes, signature: str) -> Optional[dict]:
        """
        Verify and parse a Stripe webhook event.

        Returns:
            Parsed event if the signature is valid, None otherwise
        """
        if not self._webhook_secret:
            logger.error("Stripe: Webhook secret not configured, rejecting event")
            return None

        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe: Webhook signature invalid - {e}")
            return None
        except ValueError as e:
            logger.warning(f"Stripe: Webhook payload invalid - {e}")
            return None

        logger.debug(f"Stripe: Webhook verified - {event['type']}")
        # Signature checked above; hand the plain JSON to the handlers
        return json.loads(payload)

    async def health_check(self) -> bool:
        try:
            stripe.Account.retrieve()
            logger.debug("Stripe: Health check passed")
            return True
        except stripe.StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
