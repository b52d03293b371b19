"""Collaborator dependencies for API routes"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.collaborators.eligibility import EligibilityService, AccessGrantEligibility, HttpEligibilityService
from app.collaborators.notifications import Notifier, LogNotifier, WebhookNotifier
from app.collaborators.payments import PaymentProvider, StripePaymentProvider
from app.config import settings
from app.database import get_db


def get_eligibility_service(db: AsyncSession = Depends(get_db)) -> EligibilityService:
    """Remote approval service when configured, otherwise locally recorded access grants"""
    if settings.eligibility_service_url:
        return HttpEligibilityService(settings.eligibility_service_url)
    return AccessGrantEligibility(db)


def get_payment_provider() -> PaymentProvider:
    return StripePaymentProvider()


def get_notifier() -> Notifier:
    if settings.notification_webhook_url:
        return WebhookNotifier(settings.notification_webhook_url)
    return LogNotifier()
