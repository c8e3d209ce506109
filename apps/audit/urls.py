from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import AuditLogViewSet

app_name = 'audit'

router = DefaultRouter()
router.register(r'events', AuditLogViewSet, basename='event')

urlpatterns = [
    path('', include(router.urls)),
]

# Available endpoints:
# GET /api/audit/events/           - List audit entries (filters: action, actor, target_type, target_id, date_from, date_to)
# GET /api/audit/events/{id}/      - Audit entry detail
