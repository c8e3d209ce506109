from django.urls import path
from . import views

app_name = 'users'

urlpatterns = [
    # Authentication
    path('register/', views.register, name='register'),
    path('login/', views.login, name='login'),
    path('logout/', views.logout, name='logout'),

    # Current user
    path('me/', views.get_current_user, name='current-user'),
    path('me/update/', views.update_profile, name='update-profile'),
    path('me/capabilities/', views.my_capabilities, name='capabilities'),

    # Administration
    path('users/', views.UserListView.as_view(), name='user-list'),
    path('users/<uuid:pk>/role/', views.change_role, name='change-role'),
]
