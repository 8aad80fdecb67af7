from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'leagues'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.LeagueViewSet, basename='league')

urlpatterns = [
    # League ViewSet routes
    # GET    /api/leagues/                 - List user's leagues
    # POST   /api/leagues/                 - Create league (free quota enforced)
    # GET    /api/leagues/{id}/            - Get league details

    # Custom league actions
    # GET    /api/leagues/{id}/members/    - Roster with display names
    # GET    /api/leagues/{id}/logs/       - Month logs (?month=YYYY-MM)
    # PUT    /api/leagues/{id}/logs/       - Upsert own daily log

    # Additional endpoints
    path('join/', views.join_league, name='join'),

    # Include router URLs
    path('', include(router.urls)),
]
