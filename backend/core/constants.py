"""Constants and enums for the workflow marketplace."""

from decimal import Decimal
from enum import Enum


class Role(str, Enum):
    """User role. A user may hold several at once."""

    ADMIN = "ADMIN"
    DEVELOPER = "DEVELOPER"
    BUYER = "BUYER"


class WorkflowStatus(str, Enum):
    """Listing review status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PurchaseStatus(str, Enum):
    """Purchase status."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class EarningsStatus(str, Enum):
    """Seller payout status."""

    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class SellerVerificationStatus(str, Enum):
    """Seller verification status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AuditAction(str, Enum):
    """Admin actions recorded in the audit log."""

    WORKFLOW_APPROVED = "workflow.approved"
    WORKFLOW_REJECTED = "workflow.rejected"
    USER_ROLES_UPDATED = "user.roles_updated"
    SELLER_APPROVED = "seller.approved"
    SELLER_REJECTED = "seller.rejected"


class ReconcileOutcome(str, Enum):
    """Result of applying a payment event."""

    CREATED = "created"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


DEFAULT_ROLES = [Role.BUYER.value]

# Seller / platform revenue split
SELLER_SHARE = Decimal("0.70")

FEATURED_WORKFLOWS_LIMIT = 6

# Stripe event kinds handled by the webhook
EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_PAYMENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_PAYMENT_FAILED = "payment_intent.payment_failed"

# Analytics dashboard look-back windows, in days
ANALYTICS_PERIODS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_ANALYTICS_PERIOD = "30d"
ANALYTICS_TOP_LIMIT = 10
