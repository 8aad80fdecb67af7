from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView
from . import views

app_name = 'users'

urlpatterns = [
    # Authentication (token issuance only)
    path('token/', TokenObtainPairView.as_view(), name='token-obtain'),

    # User profile
    path('me/', views.current_user, name='current-user'),
    path('me/accept-tier/', views.accept_tier, name='accept-tier'),
]
