"""
URL configuration for leads app.
"""
from django.urls import path
from leads.views import LeadActivityView, LeadDetailView, LeadIntakeView, LeadStatusView

urlpatterns = [
    path('leads/', LeadIntakeView.as_view(), name='lead-intake'),
    path('leads/<uuid:lead_id>/', LeadDetailView.as_view(), name='lead-detail'),
    path('leads/<uuid:lead_id>/status/', LeadStatusView.as_view(), name='lead-status'),
    path('leads/<uuid:lead_id>/activities/', LeadActivityView.as_view(), name='lead-activity'),
]
