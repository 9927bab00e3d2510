from django.contrib import admin

from social_feed.messaging import models


@admin.register(models.PrivateMessage)
class PrivateMessageAdmin(admin.ModelAdmin):
    list_display = ["id", "sender", "recipient", "body", "created_at"]
    search_fields = ["body"]
    list_filter = ["created_at"]
