"""Services for billing business logic."""

from .exceptions import (
    BillingServiceError,
    InvalidPeriodError,
    AccrualNotFoundError,
    PaymentNotFoundError,
    AllocationNotFoundError,
    PenaltyNotFoundError,
    AllocationError,
    MatchUpdateError,
    PenaltyStateError,
    StatementParseError,
    RequisitesNotConfiguredError,
    PeriodClosedError,
    ReasonRequiredError,
)
from .period_dates import (
    parse_period,
    period_of,
    current_period,
    shift_period,
    iter_periods,
)
from .periods import (
    is_period_closed,
    ensure_period_open,
    close_period,
    reopen_period,
    list_periods,
)
from .accruals import (
    compute_amount,
    select_plots,
    preview_accruals,
    generate_accruals,
    list_accruals,
)
from .payments import (
    create_payment,
    get_payment,
    list_payments,
)
from .allocations import (
    auto_allocate,
    manual_allocate,
    unapply_allocation,
    unapply_payment_allocations,
)
from .reconciliation import (
    get_summary,
    list_debtors,
    list_balances,
    build_period_snapshot,
    list_unallocated,
    list_overpayments,
    manual_match,
    run_auto_match,
    bulk_update_match,
    plot_debt,
)
from .statement_import import (
    parse_statement,
    match_payment_to_plot,
    import_statement,
)
from .penalties import (
    calculate_penalty,
    preview_penalty,
    apply_penalties,
    recalc_penalties,
    list_penalties,
    void_penalty,
    unvoid_penalty,
    freeze_penalty,
    unfreeze_penalty,
)
from .requisites import (
    DEFAULT_REQUISITES,
    get_active_requisites,
    update_requisites,
    ensure_default_requisites,
)
from .payment_qr import PaymentQRGenerator
from .cabinet import (
    resident_plots,
    get_resident_plot,
    get_cabinet,
)

__all__ = [
    # Exceptions
    'BillingServiceError',
    'InvalidPeriodError',
    'AccrualNotFoundError',
    'PaymentNotFoundError',
    'AllocationNotFoundError',
    'PenaltyNotFoundError',
    'AllocationError',
    'MatchUpdateError',
    'PenaltyStateError',
    'StatementParseError',
    'RequisitesNotConfiguredError',
    'PeriodClosedError',
    'ReasonRequiredError',
    # Periods
    'parse_period',
    'period_of',
    'current_period',
    'shift_period',
    'iter_periods',
    'is_period_closed',
    'ensure_period_open',
    'close_period',
    'reopen_period',
    'list_periods',
    # Accruals
    'compute_amount',
    'select_plots',
    'preview_accruals',
    'generate_accruals',
    'list_accruals',
    # Payments
    'create_payment',
    'get_payment',
    'list_payments',
    # Allocation
    'auto_allocate',
    'manual_allocate',
    'unapply_allocation',
    'unapply_payment_allocations',
    # Reconciliation
    'get_summary',
    'list_debtors',
    'list_balances',
    'build_period_snapshot',
    'list_unallocated',
    'list_overpayments',
    'manual_match',
    'run_auto_match',
    'bulk_update_match',
    'plot_debt',
    # Statement import
    'parse_statement',
    'match_payment_to_plot',
    'import_statement',
    # Penalties
    'calculate_penalty',
    'preview_penalty',
    'apply_penalties',
    'recalc_penalties',
    'list_penalties',
    'void_penalty',
    'unvoid_penalty',
    'freeze_penalty',
    'unfreeze_penalty',
    # Requisites and QR
    'DEFAULT_REQUISITES',
    'get_active_requisites',
    'update_requisites',
    'ensure_default_requisites',
    'PaymentQRGenerator',
    # Resident cabinet
    'resident_plots',
    'get_resident_plot',
    'get_cabinet',
]
