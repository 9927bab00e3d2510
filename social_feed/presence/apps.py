from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class PresenceConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "social_feed.presence"
    verbose_name = _("Presence")
