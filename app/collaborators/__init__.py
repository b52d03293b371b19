"""External collaborator interfaces and implementations"""

from app.collaborators.eligibility import (
    EligibilityService,
    AccessGrantEligibility,
    HttpEligibilityService,
)
from app.collaborators.payments import (
    PaymentProvider,
    PaymentProviderError,
    StripePaymentProvider,
    expire_session_safely,
)
from app.collaborators.notifications import Notifier, LogNotifier, WebhookNotifier, notify_safely

__all__ = [
    "EligibilityService",
    "AccessGrantEligibility",
    "HttpEligibilityService",
    "PaymentProvider",
    "PaymentProviderError",
    "StripePaymentProvider",
    "expire_session_safely",
    "Notifier",
    "LogNotifier",
    "WebhookNotifier",
    "notify_safely",
]
