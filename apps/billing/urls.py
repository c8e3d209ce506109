from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'billing'

router = DefaultRouter()
router.register(r'periods', views.PeriodViewSet, basename='period')
router.register(r'accruals', views.AccrualViewSet, basename='accrual')
router.register(r'payments', views.PaymentViewSet, basename='payment')
router.register(r'penalties', views.PenaltyViewSet, basename='penalty')

urlpatterns = [
    # Allocation
    path('allocations/auto/', views.auto_allocate_view, name='allocate-auto'),
    path('allocations/manual/', views.manual_allocate_view, name='allocate-manual'),
    path('allocations/<uuid:pk>/', views.delete_allocation, name='allocation-delete'),

    # Reconciliation
    path('reconcile/summary/', views.reconcile_summary, name='reconcile-summary'),
    path('reconcile/debtors/', views.reconcile_debtors, name='reconcile-debtors'),
    path('reconcile/balances/', views.reconcile_balances, name='reconcile-balances'),

    # Requisites and QR
    path('requisites/', views.requisites, name='requisites'),
    path('plots/<uuid:pk>/qr/', views.plot_qr, name='plot-qr'),

    # Resident cabinet
    path('my/', views.my_billing, name='my-billing'),
    path('my/qr/', views.my_qr, name='my-qr'),

    path('', include(router.urls)),
]

# Available endpoints:
# GET    /api/billing/periods/                         - Closed/reopened periods
# GET    /api/billing/periods/{YYYY-MM}/               - Period with snapshot
# POST   /api/billing/periods/{YYYY-MM}/close/         - Close period
# POST   /api/billing/periods/{YYYY-MM}/reopen/        - Reopen period (admin)
# GET    /api/billing/accruals/?period=&plot=&category= - List accruals
# POST   /api/billing/accruals/preview/                - Preview accrual run
# POST   /api/billing/accruals/generate/               - Create accruals
# GET    /api/billing/payments/                        - List payments
# POST   /api/billing/payments/                        - Record payment
# GET    /api/billing/payments/{id}/                   - Payment with allocations
# POST   /api/billing/payments/{id}/match/             - Link payment to plot
# POST   /api/billing/payments/{id}/unapply/           - Remove payment allocations
# POST   /api/billing/payments/bulk_match/             - Bulk confirm/review/unmatch
# POST   /api/billing/payments/auto_match/             - Re-run plot matching
# GET    /api/billing/payments/unallocated/            - Payments without allocations
# GET    /api/billing/payments/overpayments/           - Partially allocated payments
# POST   /api/billing/payments/import_statement/       - Bank statement upload
# POST   /api/billing/allocations/auto/                - FIFO allocation
# POST   /api/billing/allocations/manual/              - Manual allocation
# DELETE /api/billing/allocations/{id}/                - Undo allocation
# GET    /api/billing/reconcile/summary/?period=       - Period totals
# GET    /api/billing/reconcile/debtors/?period=&min_debt= - Debtors
# GET    /api/billing/reconcile/balances/?period=      - Plot balances
# GET    /api/billing/penalties/                       - List penalties
# POST   /api/billing/penalties/preview/               - Preview penalty run
# POST   /api/billing/penalties/apply/                 - Apply penalties
# POST   /api/billing/penalties/recalc/                - Recalculate active penalties
# POST   /api/billing/penalties/{id}/void|unvoid|freeze|unfreeze/ - Status changes
# GET    /api/billing/requisites/                      - Active requisites
# POST   /api/billing/requisites/                      - Save new requisites version
# GET    /api/billing/plots/{id}/qr/                   - Payment QR (PNG)
# GET    /api/billing/my/                              - Resident billing overview
# GET    /api/billing/my/qr/?plot=                     - Resident payment QR (PNG)
