from django.urls import path, include
from rest_framework.routers import DefaultRouter

from . import views

app_name = 'notifications'

router = DefaultRouter()
router.register(r'announcements', views.AnnouncementViewSet, basename='announcement')
router.register(r'drafts', views.NotificationDraftViewSet, basename='draft')

urlpatterns = [
    path('templates/', views.template_list, name='template-list'),
    path('templates/preview/', views.template_preview, name='template-preview'),
    path('', include(router.urls)),
]

# Available endpoints:
# GET    /api/notifications/announcements/                - Office list (drafts included)
# POST   /api/notifications/announcements/                - Create announcement
# GET    /api/notifications/announcements/feed/           - Published for the current user
# GET    /api/notifications/announcements/{id}/           - Announcement detail
# PATCH  /api/notifications/announcements/{id}/           - Edit announcement
# DELETE /api/notifications/announcements/{id}/           - Delete announcement
# POST   /api/notifications/announcements/{id}/publish/   - Toggle published state
# GET    /api/notifications/templates/                    - Message templates
# POST   /api/notifications/templates/preview/            - Render a template
# GET    /api/notifications/drafts/                       - Drafts list
# POST   /api/notifications/drafts/generate/              - Drafts for debtors
# GET    /api/notifications/drafts/summary/               - Counts by status
# POST   /api/notifications/drafts/bulk-approve/          - Approve many drafts
# POST   /api/notifications/drafts/send-preview/          - Dry run
# POST   /api/notifications/drafts/send/                  - Send approved drafts
# GET    /api/notifications/drafts/{id}/                  - Draft detail
# PATCH  /api/notifications/drafts/{id}/                  - Edit draft text
# POST   /api/notifications/drafts/{id}/approve/          - Approve draft
# POST   /api/notifications/drafts/{id}/cancel/           - Cancel draft
