from django.apps import AppConfig


class FleetIntegrationsConfig(AppConfig):
    name = "fleet_integrations"
    verbose_name = "Fleet Integrations"
    default_auto_field = "django.db.models.AutoField"

    def ready(self):
        # Import handler modules to trigger topic registration in router.
        import fleet_integrations.handlers.generic  # noqa: F401
        import fleet_integrations.handlers.shopify  # noqa: F401
        import fleet_integrations.handlers.woocommerce  # noqa: F401
