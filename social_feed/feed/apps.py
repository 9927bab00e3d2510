from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class FeedConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "social_feed.feed"
    verbose_name = _("Feed")
