"""
Core App Views - Current user & regions
"""

from rest_framework import viewsets, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from .models import Region
from .serializers import UserSerializer, RegionSerializer


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def me(request):
    """Get current user profile, regional scope and permissions."""
    return Response(UserSerializer(request.user).data)


class RegionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Regions visible to the current user.
    Region-restricted users only see their own regions.
    """

    serializer_class = RegionSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ['is_active']

    def get_queryset(self):
        allowed = self.request.user.allowed_region_ids
        queryset = Region.objects.all()
        if allowed:
            queryset = queryset.filter(id__in=allowed)
        return queryset
