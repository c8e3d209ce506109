from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'appeals'

router = DefaultRouter()
router.register(r'', views.AppealViewSet, basename='appeal')

urlpatterns = [
    path('', include(router.urls)),
]

# Available endpoints:
# GET    /api/appeals/?status=&q=&assigned_to=&category=   - Inbox (residents: own appeals)
# POST   /api/appeals/                                     - Submit appeal
# GET    /api/appeals/{id}/                                - Appeal with comments
# POST   /api/appeals/{id}/status/                         - Change status
# GET    /api/appeals/{id}/comments/                       - Replies
# POST   /api/appeals/{id}/comments/                       - Add reply
# POST   /api/appeals/{id}/assign/                         - Assign role / board member / due date
# POST   /api/appeals/{id}/unassign/                       - Drop personal assignee
# POST   /api/appeals/{id}/category/                       - Re-categorize
# GET    /api/appeals/{id}/activity/                       - History feed
# POST   /api/appeals/{id}/triage/                         - Re-run routing rules
# GET    /api/appeals/stats/                               - Inbox counters
# POST   /api/appeals/remind-overdue/                      - Overdue reminders (audited)
