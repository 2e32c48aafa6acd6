"""
Payment gateway boundary.

Order handling only sees two calls: ``initialize_charge`` to start a payment and
``verify`` to learn whether it settled. ``StripeGateway`` implements them with
Stripe Checkout; tests substitute their own gateway through ``get_payment_gateway``.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import stripe

from cvforge.core.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from cvforge.core.errors import InvalidWebhook, PaymentGatewayError
from cvforge.core.logging_config import sanitize_log_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChargeInitialization:
    """Where to send the customer, and the reference used to verify later."""
    authorization_url: str
    reference: str
    access_code: Optional[str] = None


@dataclass(frozen=True)
class VerificationResult:
    succeeded: bool
    reference: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    status: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    # Checkout finished but a delayed payment method has not settled yet
    pending: bool = False


class PaymentGateway(ABC):

    @abstractmethod
    def initialize_charge(
        self,
        amount: int,
        currency: str,
        reference: str,
        callback_url: str,
        email: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> ChargeInitialization:
        """Start a one-time charge. ``reference`` is our order id."""

    @abstractmethod
    def verify(self, reference: str) -> VerificationResult:
        """Look up the final state of a charge by gateway reference."""

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Authenticate and decode a webhook delivery."""


class StripeGateway(PaymentGateway):
    """Stripe Checkout in ``payment`` mode. The gateway reference is the session id."""

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.api_key = api_key or STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or STRIPE_WEBHOOK_SECRET
        if not self.api_key:
            raise PaymentGatewayError("Payments are not configured - STRIPE_SECRET_KEY required")
        stripe.api_key = self.api_key

    def initialize_charge(
        self,
        amount: int,
        currency: str,
        reference: str,
        callback_url: str,
        email: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> ChargeInitialization:
        metadata = {"order_id": reference, **(metadata or {})}
        separator = "&" if "?" in callback_url else "?"

        try:
            session = stripe.checkout.Session.create(
                mode="payment",
                customer_email=email,
                client_reference_id=reference,
                line_items=[{
                    "price_data": {
                        "currency": currency.lower(),
                        "unit_amount": amount,
                        "product_data": {"name": metadata.get("package_name", "CV package")},
                    },
                    "quantity": 1,
                }],
                success_url=f"{callback_url}{separator}reference={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{callback_url}{separator}cancelled=1",
                metadata=metadata,
                idempotency_key=f"order-{reference}",
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session: order_id={reference}, error={e}")
            raise PaymentGatewayError(f"Failed to initialize payment: {e.user_message or 'gateway error'}")

        logger.info(f"Created checkout session: order_id={reference}, session_id={session.id}")
        return ChargeInitialization(authorization_url=session.url, reference=session.id)

    def verify(self, reference: str) -> VerificationResult:
        try:
            session = stripe.checkout.Session.retrieve(reference)
        except stripe.StripeError as e:
            logger.error(f"Stripe error verifying payment: reference={reference}, error={e}")
            raise PaymentGatewayError(f"Failed to verify payment: {e.user_message or 'gateway error'}")

        metadata = dict(session.metadata or {})
        logger.info(
            f"Verified checkout session: reference={reference}, payment_status={session.payment_status}, "
            f"metadata={sanitize_log_data(metadata)}"
        )
        return VerificationResult(
            succeeded=session.payment_status == "paid",
            reference=session.id,
            amount=session.amount_total,
            currency=(session.currency or "").upper() or None,
            status=session.payment_status,
            metadata=metadata,
            pending=session.payment_status == "unpaid" and session.status == "complete",
        )

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if not self.webhook_secret:
            raise PaymentGatewayError("STRIPE_WEBHOOK_SECRET not configured")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            logger.error(f"Invalid webhook payload: {e}")
            raise InvalidWebhook("Invalid webhook payload")
        except stripe.SignatureVerificationError as e:
            logger.error(f"Webhook signature verification failed: {e}")
            raise InvalidWebhook("Invalid webhook signature")

        logger.info(f"Verified webhook event: type={event['type']}, id={event['id']}")
        return event


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency."""
    return StripeGateway()
