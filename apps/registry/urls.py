from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'registry'

router = DefaultRouter()
router.register(r'plots', views.PlotViewSet, basename='plot')
router.register(r'persons', views.PersonViewSet, basename='person')

urlpatterns = [
    path('invite-codes/', views.invite_code_list, name='invite-code-list'),
    path('import/', views.import_registry, name='import'),
    path('', include(router.urls)),
]

# Available endpoints:
# GET    /api/registry/plots/                              - List plots
# POST   /api/registry/plots/                              - Create plot
# GET    /api/registry/plots/{id}/                         - Plot with owners
# PATCH  /api/registry/plots/{id}/                         - Update plot
# DELETE /api/registry/plots/{id}/                         - Deactivate plot
# POST   /api/registry/plots/{id}/attach_owner/            - Link owner
# POST   /api/registry/plots/{id}/detach_owner/            - Unlink owner
# GET    /api/registry/persons/?q=&status=                 - Search registry
# POST   /api/registry/persons/                            - Create person
# GET    /api/registry/persons/duplicates/?full_name=&phone= - Probable duplicates
# GET    /api/registry/persons/issues/                     - Data-quality report
# POST   /api/registry/persons/merge/                      - Merge persons
# GET    /api/registry/persons/{id}/invite_codes/          - Person's invite codes
# POST   /api/registry/persons/{id}/invite_codes/          - Issue invite code
# POST   /api/registry/persons/{id}/regenerate_invite/     - Revoke and reissue
# GET    /api/registry/invite-codes/?person=&used=         - All invite codes
# POST   /api/registry/import/                             - CSV import
