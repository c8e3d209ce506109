"""Resident cabinet: what an owner sees about their own plots."""

from typing import List

from apps.accounts.models import User
from apps.billing.models import ZERO, Accrual, Payment, PenaltyAccrual, PenaltyStatus, sum_amount
from apps.registry.models import Plot

from .exceptions import BillingServiceError


def resident_plots(user: User):
    """Active plots owned by the registry card linked to ``user``."""
    person = getattr(user, 'person', None)
    if person is None or not person.is_active:
        return Plot.objects.none()
    return Plot.objects.filter(ownerships__person=person, is_active=True).distinct().order_by('street', 'number')


def get_resident_plot(user: User, plot_id) -> Plot:
    """
    One of the resident's own plots.

    Raises:
        BillingServiceError: The plot does not belong to the user
    """
    plot = resident_plots(user).filter(id=plot_id).first()
    if plot is None:
        raise BillingServiceError("Участок не найден среди ваших участков")
    return plot


def get_cabinet(user: User) -> List[dict]:
    """
    Accruals, payments and balance of each plot the resident owns.

    ``balance`` is everything received for the plot minus everything accrued;
    a negative value is debt.
    """
    result = []
    for plot in resident_plots(user):
        accruals = list(Accrual.objects.with_paid_amount().filter(plot=plot).order_by('-period', 'category', 'id'))
        payments = list(
            Payment.objects
            .with_allocated_amount()
            .filter(plot=plot)
            .order_by('-paid_at', '-created_at', 'id')[:50]
        )
        penalties = PenaltyAccrual.objects.filter(plot=plot, status=PenaltyStatus.ACTIVE)

        accrued = sum((accrual.amount for accrual in accruals), ZERO)
        paid = sum_amount(Payment.objects.filter(plot=plot))
        result.append({
            'plot': plot,
            'accruals': accruals,
            'payments': payments,
            'accrued': accrued,
            'paid': paid,
            'penalties': sum_amount(penalties),
            'balance': paid - accrued,
        })
    return result
