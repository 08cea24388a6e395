"""
Core App Serializers - User & Region
"""

from rest_framework import serializers
from django.contrib.auth import get_user_model

from .models import Region

User = get_user_model()


class RegionSerializer(serializers.ModelSerializer):

    class Meta:
        model = Region
        fields = ['id', 'code', 'name', 'is_active']


class UserSerializer(serializers.ModelSerializer):
    """Serializer for the current back-office user."""

    allowed_regions = RegionSerializer(many=True, read_only=True)
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'phone_number', 'full_name', 'role',
            'allowed_regions', 'permissions', 'is_active', 'date_joined'
        ]
        read_only_fields = fields

    def get_permissions(self, obj):
        return sorted(obj.get_all_permissions())
