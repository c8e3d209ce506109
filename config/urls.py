"""
URL configuration for SNT Portal.

API areas:
    /api/auth/           - accounts, JWT, capabilities
    /api/registry/       - plots, persons, invite codes
    /api/billing/        - accruals, payments, reconciliation, penalties
    /api/appeals/        - resident appeals and office inbox
    /api/notifications/  - announcements and debtor notification drafts
    /api/audit/          - audit log
    /api/reports/        - monthly reports, dashboard, CSV exports
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenRefreshView

from config.views import health_check

urlpatterns = [
    # Health check (for Render)
    path('api/health/', health_check, name='health-check'),

    # Admin
    path('admin/', admin.site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='api-schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='api-schema'), name='api-docs'),

    # Authentication
    path('api/auth/', include('apps.accounts.urls')),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # API endpoints
    path('api/registry/', include('apps.registry.urls')),
    path('api/billing/', include('apps.billing.urls')),
    path('api/appeals/', include('apps.appeals.urls')),
    path('api/notifications/', include('apps.notifications.urls')),
    path('api/audit/', include('apps.audit.urls')),
    path('api/reports/', include('apps.reports.urls')),
]


# Custom error handlers
handler404 = 'config.views.error_404'
handler500 = 'config.views.error_500'
