"""
CORE App - Custom User & Region Models for XPRESS OPS

Handles: Back-office users (Admins, Regional Managers, Operations, Support)
and the service regions they are scoped to.
"""

import uuid
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.core.validators import RegexValidator
from django.db import models


class UserRole(models.TextChoices):
    """Back-office role enumeration."""
    ADMIN = 'ADMIN', 'Administrator'
    REGIONAL_MANAGER = 'REGIONAL_MANAGER', 'Regional Manager'
    OPERATIONS = 'OPERATIONS', 'Ground Operations'
    SUPPORT = 'SUPPORT', 'Support'
    EXECUTIVE = 'EXECUTIVE', 'Executive'


class Region(models.Model):
    """Service region (e.g. NCR, Cebu, Davao)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=20, unique=True, verbose_name="Region code")
    name = models.CharField(max_length=100, verbose_name="Region name")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Region"
        verbose_name_plural = "Regions"
        ordering = ['code']

    def __str__(self):
        return f"{self.code} - {self.name}"


class UserManager(BaseUserManager):
    """Custom user manager for phone-based authentication."""

    def create_user(self, phone_number, password=None, **extra_fields):
        if not phone_number:
            raise ValueError('Phone number is required')

        user = self.model(phone_number=phone_number, **extra_fields)
        if password:
            user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, phone_number, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(phone_number, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Back-office user, identified by phone number.

    Key Business Logic:
    - allowed_regions scopes what the user may act on; an empty set means
      the user is not region-restricted (HQ roles)
    - fine-grained actions (e.g. commission tier changes) are Django model
      permissions granted directly or through groups
    """

    # Phone number validator for the Philippines (+63)
    phone_regex = RegexValidator(
        regex=r'^\+63[0-9]{10}$',
        message="Format: +63XXXXXXXXXX (10 digits after +63)"
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    phone_number = models.CharField(
        max_length=15,
        unique=True,
        validators=[phone_regex],
        verbose_name="Phone number"
    )

    # Profile
    full_name = models.CharField(max_length=150, blank=True, verbose_name="Full name")
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.SUPPORT,
        verbose_name="Role"
    )

    # Regional scope
    allowed_regions = models.ManyToManyField(
        Region,
        blank=True,
        related_name='users',
        verbose_name="Allowed regions",
        help_text="Leave empty for nationwide access"
    )

    # Django Auth Fields
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)

    objects = UserManager()

    USERNAME_FIELD = 'phone_number'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        ordering = ['-date_joined']

    def __str__(self):
        return f"{self.full_name or self.phone_number} ({self.role})"

    @property
    def display_name(self) -> str:
        return self.full_name or self.phone_number

    @property
    def allowed_region_ids(self) -> frozenset:
        """Ids of the regions this user may act on (empty = unrestricted)."""
        return frozenset(self.allowed_regions.values_list('id', flat=True))

    def has_region_access(self, region_id) -> bool:
        allowed = self.allowed_region_ids
        return not allowed or region_id in allowed
