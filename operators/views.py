"""
Operators App Views - Commission Tier API
"""

import logging

from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions, status
from rest_framework.exceptions import PermissionDenied
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend

from .models import Operator, CommissionTierAudit
from .serializers import (
    OperatorTierSerializer, CommissionTierChangeSerializer, CommissionTierAuditSerializer
)
from .services.tier_policy import get_tier_policy
from .services.transitions import (
    ActorContext, TransitionError, TransitionErrorCode, TransitionOrchestrator, TransitionRequest,
)

logger = logging.getLogger(__name__)


class HasOperatorPermission(permissions.BasePermission):
    """
    Route-level gate. Views declare the model permissions they need
    per HTTP method in `required_permissions`.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        required = getattr(view, 'required_permissions', {}).get(request.method, [])
        return request.user.has_perms(required)


def error_response(error):
    return Response({'error': error.to_dict()}, status=error.http_status)


class CommissionTierView(APIView):
    """
    GET  /api/operators/<id>/commission-tier/  - current tier + qualification
    POST /api/operators/<id>/commission-tier/  - request a tier change
    """

    permission_classes = [HasOperatorPermission]
    required_permissions = {
        'GET': ['operators.manage_operators'],
        'POST': ['operators.manage_operators', 'operators.update_commission_tier'],
    }

    def get_orchestrator(self):
        return TransitionOrchestrator()

    def get(self, request, operator_id):
        actor = ActorContext.from_user(request.user)
        evaluation = self.get_orchestrator().evaluate_operator(actor, operator_id)

        qualification = None
        evaluation_error = None
        if not isinstance(evaluation, TransitionError):
            qualification = evaluation.to_dict()
        elif evaluation.code == TransitionErrorCode.TIER_EVALUATION_ERROR:
            evaluation_error = evaluation.to_dict()
        else:
            return error_response(evaluation)

        operator = get_object_or_404(Operator.objects.select_related('primary_region'), pk=operator_id)
        policy = get_tier_policy()

        return Response({
            'success': True,
            'data': {
                'operator': OperatorTierSerializer(operator).data,
                'commission_rate': float(policy.rate(operator.commission_tier)),
                'qualification': qualification,
                'evaluation_error': evaluation_error,
                'requirements_for_next_tier': policy.requirements_for_next_tier(operator.commission_tier),
            }
        })

    def post(self, request, operator_id):
        serializer = CommissionTierChangeSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({
                'error': {
                    'code': TransitionErrorCode.VALIDATION_ERROR.value,
                    'message': 'Invalid commission tier change request',
                    'details': {'errors': serializer.errors},
                    'retryable': False,
                }
            }, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        outcome = self.get_orchestrator().request_transition(TransitionRequest(
            actor=ActorContext.from_user(request.user),
            operator_id=operator_id,
            target_tier=data['target_tier'],
            notes=data.get('notes') or None,
        ))

        if not outcome.ok:
            return error_response(outcome)

        return Response({
            'success': True,
            'data': outcome.to_dict(),
            'message': f"Commission tier updated from {outcome.previous_tier} to {outcome.new_tier}",
        })


class CommissionTierHistoryView(generics.ListAPIView):
    """
    GET /api/operators/<id>/commission-tier/history/

    Audit trail of every tier transition attempt, newest first.
    Filters: ?outcome=applied&change_type=upgrade
    """

    serializer_class = CommissionTierAuditSerializer
    permission_classes = [HasOperatorPermission]
    required_permissions = {'GET': ['operators.manage_operators']}
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_fields = ['outcome', 'change_type']
    ordering_fields = ['recorded_at']
    ordering = ['-recorded_at']

    def get_queryset(self):
        operator_id = self.kwargs['operator_id']
        user = self.request.user

        operator = Operator.objects.filter(pk=operator_id).only('primary_region').first()
        if operator is not None:
            if not user.has_region_access(operator.primary_region_id):
                raise PermissionDenied('You do not have access to operators in this region')
        elif user.allowed_region_ids:
            # Trail of a removed operator: region unknown, nationwide users only
            raise PermissionDenied('You do not have access to this operator history')

        return CommissionTierAudit.objects.filter(operator_id=operator_id)
