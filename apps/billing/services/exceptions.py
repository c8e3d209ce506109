"""Domain exceptions for billing services."""
from rest_framework.exceptions import APIException


class BillingServiceError(Exception):
    """Base exception for billing services."""
    pass


class InvalidPeriodError(BillingServiceError):
    """Raised when a period is not in YYYY-MM form."""
    pass


class AccrualNotFoundError(BillingServiceError):
    pass


class PaymentNotFoundError(BillingServiceError):
    pass


class AllocationNotFoundError(BillingServiceError):
    pass


class PenaltyNotFoundError(BillingServiceError):
    pass


class AllocationError(BillingServiceError):
    """Raised when an allocation amount does not fit the remainders."""
    pass


class MatchUpdateError(BillingServiceError):
    """Raised when a payment cannot be matched or re-matched."""
    pass


class PenaltyStateError(BillingServiceError):
    """Raised on a penalty status change that makes no sense (e.g. freezing a voided row)."""
    pass


class StatementParseError(BillingServiceError):
    """Raised when a statement file cannot be read at all."""
    pass


class RequisitesNotConfiguredError(BillingServiceError):
    """Raised when no active payment requisites exist."""
    pass


class PeriodClosedError(APIException):
    """Change to a closed period without a reason."""
    status_code = 409
    default_detail = 'Период закрыт. Укажите причину изменения.'
    default_code = 'period_closed'


class ReasonRequiredError(APIException):
    status_code = 400
    default_detail = 'Укажите причину.'
    default_code = 'reason_required'
