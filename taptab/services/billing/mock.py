"""
Mock Billing Service Implementation

Simulates Stripe checkout without API calls. Used in development mode
(ENV_MODE=development) and in tests.

Behavior:
    - Generates Stripe-like session ids (cs_mock_xxx)
    - Optional simulated latency and failure rate
    - Webhooks are parsed as JSON without signature verification
"""

import asyncio
import json
import logging
import random
import uuid
from typing import Optional

from taptab.services.billing.base import BaseBillingService, CheckoutResult

logger = logging.getLogger(__name__)


class MockBillingService(BaseBillingService):
    """
    Attributes:
        failure_rate: Probability of a simulated checkout failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.sessions: list[dict] = []

        logger.info(
            f"MockBillingService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    async def create_checkout_session(
        self,
        user_id: str,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> CheckoutResult:
        await self._simulate_latency()

        if random.random() < self.failure_rate:
            logger.debug(f"Mock: Checkout failed for {user_id}")
            return CheckoutResult(
                success=False,
                error_message="Billing service temporarily unavailable",
                error_code="connection_error",
            )

        session_id = f"cs_mock_{uuid.uuid4().hex[:24]}"
        self.sessions.append({
            "id": session_id,
            "user_id": user_id,
            "customer_email": customer_email,
        })
        logger.info(f"Mock: Checkout session created - {session_id} for {user_id}")

        separator = "&" if "?" in success_url else "?"
        return CheckoutResult(
            success=True,
            session_id=session_id,
            url=f"{success_url}{separator}session_id={session_id}",
        )

    async def verify_webhook(self, payload: bytes, signature: str) -> Optional[dict]:
        """Parse the payload without cryptographic verification."""
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Mock: Invalid webhook payload")
            return None
        if not isinstance(event, dict) or "type" not in event:
            logger.warning("Mock: Webhook payload is not an event")
            return None
        return event

    async def health_check(self) -> bool:
        return True
