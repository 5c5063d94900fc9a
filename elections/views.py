from rest_framework import status, permissions, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django.utils import timezone

from authentication.permissions import IsConsoleAdmin
from . import services
from .models import ElectionStatus
from .serializers import ElectionSerializer, ElectionCreateSerializer, ElectionSummarySerializer


class ElectionViewSet(viewsets.GenericViewSet):
    """
    Elections are created by admins and are read-only afterwards, so only
    list, retrieve and create are exposed.
    """
    serializer_class = ElectionSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_field = 'election_id'

    def get_permissions(self):
        # Only admins can create elections
        if self.action == 'create':
            permission_classes = [permissions.IsAuthenticated, IsConsoleAdmin]
        else:
            permission_classes = [permissions.IsAuthenticated]
        return [permission() for permission in permission_classes]

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['now'] = timezone.now()
        return context

    def list(self, request):
        status_filter = request.query_params.get('status')
        if status_filter and status_filter not in ElectionStatus.values:
            return Response({
                'error': f'Unknown status filter: {status_filter}'
            }, status=status.HTTP_400_BAD_REQUEST)

        context = self.get_serializer_context()
        elections = services.list_elections(
            now=context['now'],
            status=status_filter,
            search=request.query_params.get('search'),
        )
        serializer = ElectionSerializer(elections, many=True, context=context)
        return Response(serializer.data)

    def retrieve(self, request, election_id=None):
        election = services.get_election(election_id)
        serializer = ElectionSerializer(election, context=self.get_serializer_context())
        return Response(serializer.data)

    def create(self, request):
        serializer = ElectionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        election = services.create_election(created_by=request.user, **serializer.validated_data)
        return Response(
            ElectionSerializer(election, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED
        )

    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Dashboard counters: elections in total and per status"""
        summary = services.election_summary(now=timezone.now())
        return Response(ElectionSummarySerializer(summary).data)
