"""
Domain errors for entitlements, usage metering and orders.

Every error carries a stable ``code`` and an HTTP ``status_code`` plus whatever
structure the client needs to render an upgrade prompt (plan names, numbers,
feature id). Handlers in ``cvforge.main`` turn them into JSON responses.
"""
from typing import Any, Dict, Optional


class CVForgeError(Exception):
    code = "cvforge_error"
    status_code = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload = {"error": self.code, "message": self.message}
        payload.update({k: v for k, v in self.details.items() if v is not None})
        return payload


class UnknownPlan(CVForgeError):
    code = "unknown_plan"
    status_code = 400

    def __init__(self, plan_id: Any):
        super().__init__(f"Unknown plan: {plan_id!r}", plan=str(plan_id))
        self.plan_id = plan_id


class UnknownPackage(CVForgeError):
    code = "unknown_package"
    status_code = 400

    def __init__(self, package_type: Any):
        super().__init__(f"Unknown package type: {package_type!r}", package_type=str(package_type))


class Unauthorized(CVForgeError):
    code = "unauthorized"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class Forbidden(CVForgeError):
    code = "forbidden"
    status_code = 403


class LimitReached(CVForgeError):
    """Count-based denial: the user used up this month's allowance."""
    code = "limit_reached"
    status_code = 402

    def __init__(
        self,
        feature: str,
        current: int,
        limit: int,
        current_plan: Optional[str],
        required_plan: Optional[str] = None,
    ):
        if required_plan:
            hint = f"Upgrade to {required_plan.title()} to continue."
        else:
            hint = "Your allowance resets at the start of next month."
        super().__init__(
            f"You've used {current} of {limit} {feature} this month on the "
            f"{(current_plan or 'unknown').title()} plan. {hint}",
            feature=feature,
            current=current,
            limit=limit,
            current_plan=current_plan,
            required_plan=required_plan,
        )
        self.feature = feature
        self.current = current
        self.limit = limit
        self.current_plan = current_plan
        self.required_plan = required_plan


class AccessDenied(CVForgeError):
    """Capability-based denial: the plan tier lacks the feature outright."""
    code = "access_denied"
    status_code = 403

    def __init__(self, feature: str, current_plan: Optional[str], required_plan: Optional[str]):
        super().__init__(
            f"{feature} requires the {(required_plan or 'a higher').title()} plan or higher. "
            f"You are on the {(current_plan or 'unknown').title()} plan.",
            feature=feature,
            current_plan=current_plan,
            required_plan=required_plan,
        )
        self.feature = feature
        self.current_plan = current_plan
        self.required_plan = required_plan


class InvalidUpgradePath(CVForgeError):
    code = "invalid_upgrade_path"
    status_code = 400

    def __init__(self, message: str, current_plan: str, target_plan: str):
        super().__init__(message, current_plan=current_plan, target_plan=target_plan)
        self.current_plan = current_plan
        self.target_plan = target_plan


class UserNotFound(CVForgeError):
    code = "user_not_found"
    status_code = 404

    def __init__(self, user_id: str):
        super().__init__("User not found", user_id=user_id)


class CVNotFound(CVForgeError):
    code = "cv_not_found"
    status_code = 404

    def __init__(self, cv_id: str):
        super().__init__("CV not found", cv_id=cv_id)


class CoverLetterNotFound(CVForgeError):
    code = "cover_letter_not_found"
    status_code = 404

    def __init__(self, cover_letter_id: Optional[str] = None, cv_id: Optional[str] = None):
        super().__init__("Cover letter not found", cover_letter_id=cover_letter_id, cv_id=cv_id)


class OrderNotFound(CVForgeError):
    code = "order_not_found"
    status_code = 404

    def __init__(self, order_id: Optional[str] = None, reference: Optional[str] = None):
        super().__init__("Order not found", order_id=order_id, reference=reference)


class OrderStateError(CVForgeError):
    """Illegal order transition, or an action that needs a completed order."""
    code = "invalid_order_state"
    status_code = 409

    def __init__(self, message: str, order_id: str, status: str):
        super().__init__(message, order_id=order_id, status=status)
        self.status = status


class EditsExhausted(CVForgeError):
    code = "edits_exhausted"
    status_code = 402

    def __init__(self, order_id: str, package_type: Optional[str] = None):
        super().__init__(
            "You have used all edits included in this package. Purchase a higher package to continue.",
            order_id=order_id,
            feature="edits",
            package_type=package_type,
            edits_remaining=0,
        )


class PaymentVerificationFailed(CVForgeError):
    code = "payment_verification_failed"
    status_code = 402

    def __init__(self, message: str, reference: str, order_id: Optional[str] = None):
        super().__init__(message, reference=reference, order_id=order_id)


class PaymentGatewayError(CVForgeError):
    code = "payment_gateway_error"
    status_code = 502


class StoreUnavailable(CVForgeError):
    code = "store_unavailable"
    status_code = 503

    def __init__(self, message: str = "Service temporarily unavailable. Please try again."):
        super().__init__(message)


class InvalidWebhook(CVForgeError):
    code = "invalid_webhook"
    status_code = 400


class AIServiceError(CVForgeError):
    code = "ai_service_error"
    status_code = 502

    def __init__(self, message: str = "AI service temporarily unavailable. Please try again later."):
        super().__init__(message)
