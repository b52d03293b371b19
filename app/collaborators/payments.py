"""Payment collaborator"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional

import stripe
import structlog

from app.config import settings
from app.schemas.payment import RefundResult, ChargeResult

logger = structlog.get_logger()


class PaymentProviderError(Exception):
    """Payment processor rejected or failed a request"""
    pass


class PaymentProvider(ABC):
    """Abstract payment processor; the engine only passes amounts and opaque references"""

    @abstractmethod
    async def create_payment_session(self, amount_cents: int, currency: str, metadata: Dict[str, str]) -> str:
        """Open a checkout session and return its token"""
        pass

    @abstractmethod
    async def expire_payment_session(self, token: str) -> None:
        """Close an unpaid checkout session so it can no longer be paid"""
        pass

    @abstractmethod
    async def refund(self, transaction_id: str, amount_cents: int, idempotency_key: Optional[str] = None) -> RefundResult:
        """Refund part of a captured payment; retries with the same key refund once"""
        pass

    @abstractmethod
    async def charge_penalty(
        self,
        customer_ref: str,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, str],
    ) -> ChargeResult:
        """Off-session charge against a saved payment method"""
        pass


class StripePaymentProvider(PaymentProvider):
    """Stripe Checkout / PaymentIntents implementation"""

    def __init__(self, api_key: str = None):
        stripe.api_key = api_key or settings.stripe_secret_key
        self.success_url = settings.stripe_success_url
        self.cancel_url = settings.stripe_cancel_url

    async def create_payment_session(self, amount_cents: int, currency: str, metadata: Dict[str, str]) -> str:
        if not stripe.api_key:
            raise PaymentProviderError("Stripe secret key not configured")

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                mode="payment",
                line_items=[{
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": {"name": metadata.get("description", "Kitchen booking")},
                        "unit_amount": amount_cents,
                    },
                    "quantity": 1,
                }],
                success_url=self.success_url,
                cancel_url=self.cancel_url,
                metadata={key: str(value) for key, value in metadata.items()},
            )
        except stripe.StripeError as e:
            logger.error("Stripe session creation failed", error=str(e))
            raise PaymentProviderError(str(e)) from e

        logger.info("Stripe session created", session_id=session["id"], amount_cents=amount_cents)
        return session["id"]

    async def expire_payment_session(self, token: str) -> None:
        try:
            await asyncio.to_thread(stripe.checkout.Session.expire, token)
        except stripe.StripeError as e:
            logger.error("Stripe session expiry failed", session_id=token, error=str(e))
            raise PaymentProviderError(str(e)) from e

        logger.info("Stripe session expired", session_id=token)

    async def refund(self, transaction_id: str, amount_cents: int, idempotency_key: Optional[str] = None) -> RefundResult:
        try:
            refund = await asyncio.to_thread(
                stripe.Refund.create,
                payment_intent=transaction_id,
                amount=amount_cents,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            logger.error("Stripe refund failed", transaction_id=transaction_id, error=str(e))
            raise PaymentProviderError(str(e)) from e

        return RefundResult(
            refund_id=refund["id"],
            amount_cents=refund["amount"],
            status=refund["status"],
        )

    async def charge_penalty(
        self,
        customer_ref: str,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, str],
    ) -> ChargeResult:
        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                amount=amount_cents,
                currency=currency.lower(),
                customer=customer_ref,
                off_session=True,
                confirm=True,
                metadata={key: str(value) for key, value in metadata.items()},
            )
        except stripe.CardError as e:
            # Declined cards are an outcome, not a failure of the call
            return ChargeResult(succeeded=False, failure_reason=e.user_message or str(e))
        except stripe.StripeError as e:
            logger.error("Stripe penalty charge failed", customer_ref=customer_ref, error=str(e))
            raise PaymentProviderError(str(e)) from e

        return ChargeResult(
            charge_id=intent["id"],
            succeeded=intent["status"] == "succeeded",
            failure_reason=None if intent["status"] == "succeeded" else intent["status"],
        )


async def expire_session_safely(payments: PaymentProvider, token: Optional[str]) -> None:
    """Expire a session whose booking was rolled back; a failure is logged, the rollback error wins"""
    if not token:
        return
    try:
        await payments.expire_payment_session(token)
    except PaymentProviderError as e:
        logger.warning("Orphaned payment session left open", session_id=token, error=str(e))
