from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import CampaignViewSet, CampaignTemplateViewSet, process_triggers

router = DefaultRouter()
router.register(r'campaigns', CampaignViewSet)
router.register(r'campaign-templates', CampaignTemplateViewSet)

urlpatterns = [
    path('campaigns/triggers/<str:trigger_type>/', process_triggers, name='campaign-triggers'),
    path('', include(router.urls)),
]
