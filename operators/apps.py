from django.apps import AppConfig


class OperatorsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'operators'
    verbose_name = 'Operators'

    def ready(self):
        # Fail at startup on a broken tier table, not on the first request
        from operators.services.tier_policy import get_tier_policy
        get_tier_policy().validate()
