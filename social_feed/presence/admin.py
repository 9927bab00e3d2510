from django.contrib import admin

from social_feed.presence import models


@admin.register(models.PresenceEntry)
class PresenceEntryAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "display_name", "connection_id", "connected_at"]
    search_fields = ["display_name", "user__email"]
    readonly_fields = ["connected_at"]
