from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backoffice.orders'

    def ready(self):
        """Import signals when app is ready"""
        import backoffice.orders.signals  # noqa: F401
