from django.apps import AppConfig
from django.conf import settings


class MarketplaceConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "marketplace"

    def ready(self):
        from marketplace.infra.observability.tracing import setup_tracing

        setup_tracing(
            service_name=getattr(settings, "TRACING_SERVICE_NAME", "bazaar-backend"),
            enable=getattr(settings, "TRACING_ENABLED", False),
        )
