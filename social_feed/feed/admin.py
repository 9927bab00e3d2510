from django.contrib import admin

from social_feed.feed import models


@admin.register(models.Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ["id", "author", "content", "created_at"]
    search_fields = ["content", "author__email", "author__display_name"]
    list_filter = ["created_at"]


@admin.register(models.Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ["id", "post", "author", "content", "created_at"]
    search_fields = ["content"]


@admin.register(models.Like)
class LikeAdmin(admin.ModelAdmin):
    list_display = ["id", "post", "user", "created_at"]
