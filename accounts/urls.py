"""
URL routing for account API endpoints.
"""
from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('signup', views.SignupView.as_view(), name='signup'),
    path('login', views.LoginView.as_view(), name='login'),
    path('logout', views.LogoutView.as_view(), name='logout'),
    path('me', views.MeView.as_view(), name='me'),
    path('me/settings', views.MeSettingsView.as_view(), name='me-settings'),
    path('me/password', views.MePasswordView.as_view(), name='me-password'),
    path('me/avatar', views.MeAvatarView.as_view(), name='me-avatar'),
]
