"""
Billing Service Abstract Base Class

Defines the interface for subscription billing. Both MockBillingService
and StripeBillingService implement it, so checkout and webhook handling
work identically whichever is active.

Design Pattern: Strategy Pattern
    - Runtime switching between billing providers
    - Mock implementation for local development and tests
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class CheckoutResult:
    """
    Result of creating a hosted checkout session.

    Attributes:
        success: Whether the session was created
        session_id: Provider session id (Stripe format: cs_xxx)
        url: Hosted checkout page to redirect the owner to
        error_message: Error description if creation failed
        error_code: Machine-readable error code
    """
    success: bool
    session_id: Optional[str] = None
    url: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "session_id": self.session_id,
            "url": self.url,
            "error_message": self.error_message,
            "error_code": self.error_code,
        }


class BaseBillingService(ABC):
    """
    Abstract base class for billing services.

    Example:
        >>> service = get_billing_service()
        >>> result = await service.create_checkout_session(
        ...     user_id="owner-1",
        ...     success_url="https://taptab.menu/dashboard?upgraded=1",
        ...     cancel_url="https://taptab.menu/pricing",
        ... )
        >>> if result.success:
        ...     redirect(result.url)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        user_id: str,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> CheckoutResult:
        """
        Start a premium subscription checkout for ``user_id``.

        The user id travels in the subscription metadata (``userId``) so
        webhook events can be matched back to the owner.
        """
        pass

    @abstractmethod
    async def verify_webhook(self, payload: bytes, signature: str) -> Optional[dict]:
        """
        Verify and parse a webhook from the billing provider.

        Returns:
            dict: Parsed event if valid, None if invalid
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
