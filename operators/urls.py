"""
Operators App URLs
"""

from django.urls import path

from .views import CommissionTierView, CommissionTierHistoryView

urlpatterns = [
    path('operators/<uuid:operator_id>/commission-tier/', CommissionTierView.as_view(), name='operator-commission-tier'),
    path('operators/<uuid:operator_id>/commission-tier/history/', CommissionTierHistoryView.as_view(), name='operator-commission-tier-history'),
]
