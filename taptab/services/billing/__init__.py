"""
Billing Service Factory

Usage:
    from taptab.services.billing import get_billing_service

    billing = get_billing_service()
    result = await billing.create_checkout_session(user_id, success_url, cancel_url)

Environment Switching:
    - ENV_MODE=development → MockBillingService (no API calls)
    - ENV_MODE=staging → StripeBillingService (test keys)
    - ENV_MODE=production → StripeBillingService (live keys)
"""

import logging
from functools import lru_cache

from taptab.core.config import get_settings
from taptab.services.billing.base import BaseBillingService, CheckoutResult
from taptab.services.billing.mock import MockBillingService
from taptab.services.billing.stripe import StripeBillingService

logger = logging.getLogger(__name__)


@lru_cache()
def get_billing_service() -> BaseBillingService:
    """
    Get the configured billing service instance (cached).

    Raises:
        ValueError: If staging/production mode but Stripe key not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Billing Service: Using MockBillingService (development mode)")
        return MockBillingService()

    logger.info(
        f"Billing Service: Using StripeBillingService "
        f"({settings.env_mode.value} mode)"
    )
    return StripeBillingService()


def reset_billing_service() -> None:
    """Clear the cached billing service instance."""
    get_billing_service.cache_clear()
    logger.debug("Billing service cache cleared")


__all__ = [
    "get_billing_service",
    "reset_billing_service",
    "BaseBillingService",
    "CheckoutResult",
    "MockBillingService",
    "StripeBillingService",
]
