"""
XPRESS OPS Core Tests
======================

Tests for:
1. Custom User Model (creation, roles, regional scope)
2. Current user & region endpoints
3. Health check endpoints
"""

from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework.test import APIClient

from core.models import Region, User, UserRole
from operators.services.transitions import ActorContext


class TestUserModel(TestCase):
    """Tests for the custom User model."""

    def setUp(self):
        """Create regions and a regional manager."""
        self.ncr = Region.objects.create(code='NCR', name='National Capital Region')
        self.cebu = Region.objects.create(code='CEB', name='Central Visayas')
        self.manager = User.objects.create_user(
            phone_number='+639171234567',
            password='testpass123',
            full_name='Ana Reyes',
            role=UserRole.REGIONAL_MANAGER,
        )

    def test_create_user(self):
        """Users default to the support role and check passwords."""
        user = User.objects.create_user(phone_number='+639170000001', password='testpass123')
        self.assertEqual(user.role, UserRole.SUPPORT)
        self.assertTrue(user.check_password('testpass123'))
        self.assertFalse(user.is_staff)

    def test_create_user_requires_phone(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(phone_number='')

    def test_create_superuser(self):
        admin = User.objects.create_superuser(phone_number='+639170000002', password='adminpass')
        self.assertTrue(admin.is_staff)
        self.assertTrue(admin.is_superuser)
        self.assertEqual(admin.role, UserRole.ADMIN)

    def test_phone_number_format(self):
        """Only +63 numbers with 10 digits are valid."""
        user = User(phone_number='+237699000001')
        with self.assertRaises(ValidationError):
            user.full_clean()

    def test_display_name(self):
        self.assertEqual(self.manager.display_name, 'Ana Reyes')
        self.assertEqual(User(phone_number='+639170000003').display_name, '+639170000003')

    def test_unrestricted_user_has_nationwide_access(self):
        self.assertEqual(self.manager.allowed_region_ids, frozenset())
        self.assertTrue(self.manager.has_region_access(self.ncr.id))

    def test_region_restricted_user(self):
        self.manager.allowed_regions.add(self.ncr)
        self.assertTrue(self.manager.has_region_access(self.ncr.id))
        self.assertFalse(self.manager.has_region_access(self.cebu.id))

    def test_actor_context_from_user(self):
        """The engine sees string ids and the full permission set."""
        self.manager.allowed_regions.add(self.cebu)
        actor = ActorContext.from_user(self.manager)

        self.assertEqual(actor.actor_id, str(self.manager.pk))
        self.assertEqual(actor.display_name, 'Ana Reyes')
        self.assertEqual(actor.allowed_region_ids, frozenset({str(self.cebu.pk)}))
        self.assertTrue(actor.can_access_region(str(self.cebu.pk)))
        self.assertFalse(actor.can_access_region(str(self.ncr.pk)))


class TestCoreEndpoints(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.ncr = Region.objects.create(code='NCR', name='National Capital Region')
        self.cebu = Region.objects.create(code='CEB', name='Central Visayas')
        self.user = User.objects.create_user(
            phone_number='+639171234567',
            password='testpass123',
            full_name='Ana Reyes',
        )

    def test_me(self):
        self.client.force_authenticate(self.user)

        response = self.client.get('/api/users/me/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['phone_number'], '+639171234567')
        self.assertEqual(response.json()['permissions'], [])

    def test_regions_are_scoped(self):
        self.user.allowed_regions.add(self.cebu)
        self.client.force_authenticate(self.user)

        response = self.client.get('/api/regions/')

        codes = [region['code'] for region in response.json()['results']]
        self.assertEqual(codes, ['CEB'])

    def test_token_obtain(self):
        response = self.client.post(
            '/api/auth/token/',
            {'phone_number': '+639171234567', 'password': 'testpass123'},
            format='json',
        )

        self.assertEqual(response.status_code, 200)
        self.assertIn('access', response.json())


class TestHealthChecks(TestCase):

    def test_liveness(self):
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'ok')

    def test_readiness(self):
        response = self.client.get('/health/ready/')

        self.assertEqual(response.status_code, 200)
        checks = response.json()['checks']
        self.assertEqual(checks['database']['status'], 'healthy')
        self.assertEqual(checks['cache']['status'], 'healthy')
        self.assertEqual(checks['tier_policy']['status'], 'healthy')
