from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from rest_framework import serializers
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from social_feed.core.gateway import PersistenceGateway

from .serializers import PrivateMessageSerializer


class HistoryQuerySerializer(serializers.Serializer):
    withUserId = serializers.UUIDField()  # noqa: N815


@extend_schema(
    tags=["Messaging"],
    parameters=[OpenApiParameter("withUserId", str, required=True)],
    responses=PrivateMessageSerializer(many=True),
)
class ChatHistoryView(APIView):
    """Private chat history between the authenticated user and ``withUserId``."""

    permission_classes = [IsAuthenticated]
    gateway = PersistenceGateway()

    def get(self, request):
        query = HistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        history = self.gateway.fetch_history(
            request.user.pk,
            query.validated_data["withUserId"],
        )
        return Response(
            {
                "success": True,
                "history": PrivateMessageSerializer(history, many=True).data,
            },
        )
