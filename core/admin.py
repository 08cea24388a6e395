"""
Django Admin configuration for CORE app.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Region


@admin.register(Region)
class RegionAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('code', 'name')
    ordering = ('code',)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom admin for User model with phone-based auth."""

    list_display = (
        'phone_number',
        'full_name',
        'role',
        'region_scope',
        'is_active',
        'date_joined'
    )
    list_filter = ('role', 'is_active', 'is_staff', 'allowed_regions')
    search_fields = ('phone_number', 'full_name')
    ordering = ('-date_joined',)
    filter_horizontal = ('allowed_regions', 'groups', 'user_permissions')

    fieldsets = (
        (None, {
            'fields': ('phone_number', 'password')
        }),
        ('Profile', {
            'fields': ('full_name', 'role')
        }),
        ('Regional scope', {
            'fields': ('allowed_regions',),
            'description': 'No region selected = nationwide access'
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
            'classes': ('collapse',)
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('phone_number', 'role', 'password1', 'password2'),
        }),
    )

    readonly_fields = ('date_joined',)

    def region_scope(self, obj):
        codes = list(obj.allowed_regions.values_list('code', flat=True))
        return ", ".join(codes) if codes else "Nationwide"
    region_scope.short_description = "Regions"
