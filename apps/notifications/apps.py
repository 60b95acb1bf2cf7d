from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.notifications"

    def ready(self) -> None:
        from shared.application.message_bus import message_bus
        from . import handlers

        handlers.register(message_bus)
