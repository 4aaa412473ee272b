from django.urls import path
from . import views

urlpatterns = [
    path('campaigns/<int:campaign_id>/', views.campaign_analytics, name='campaign_analytics'),
    path('campaigns/<int:campaign_id>/refresh-stats/', views.refresh_stats, name='refresh_campaign_stats'),
]
