from django.urls import path
from . import views

app_name = 'reports'

urlpatterns = [
    path('monthly/', views.monthly_aggregates, name='monthly-aggregates'),
    path('monthly/report/', views.monthly_report, name='monthly-report'),
    path('dashboard/', views.dashboard, name='dashboard'),

    # CSV exports
    path('export/debtors.csv', views.debtors_csv, name='export-debtors'),
    path('export/accruals.csv', views.accruals_csv, name='export-accruals'),
    path('export/payments.csv', views.payments_csv, name='export-payments'),
    path('export/registry.csv', views.registry_csv, name='export-registry'),
]

# Available endpoints:
# GET /api/reports/monthly/?from=&to=          - Money flow per month
# GET /api/reports/monthly/report/?period=     - One-month report
# GET /api/reports/dashboard/                  - Office counters
# GET /api/reports/export/debtors.csv          - Debtors (finance)
# GET /api/reports/export/accruals.csv         - Accruals (finance)
# GET /api/reports/export/payments.csv         - Payments (finance)
# GET /api/reports/export/registry.csv         - Registry (office)
