from rest_framework import status, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsConsoleAdmin, is_console_admin
from . import services
from .serializers import (
    ParticipationRequestSerializer, ParticipationRequestCreateSerializer,
    DecisionSerializer, ParticipationRequestFilterSerializer
)


class ParticipationRequestListView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        filters = ParticipationRequestFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        params = dict(filters.validated_data)

        # Voters can only see their own requests
        if not is_console_admin(request.user):
            params['user_id'] = request.user.user_id

        requests = services.list_requests(**params)
        serializer = ParticipationRequestSerializer(requests, many=True)
        return Response(serializer.data)

    def post(self, request):
        serializer = ParticipationRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user_id = serializer.validated_data.get('user_id', request.user.user_id)
        if str(user_id) != str(request.user.user_id) and not is_console_admin(request.user):
            return Response({
                'error': 'You can only request candidacy for yourself'
            }, status=status.HTTP_403_FORBIDDEN)

        participation_request = services.submit_request(
            user_id,
            serializer.validated_data['election_id'],
        )
        return Response(
            ParticipationRequestSerializer(participation_request).data,
            status=status.HTTP_201_CREATED
        )


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated, IsConsoleAdmin])
def decide_request(request, request_id):
    """Approve or reject a pending participation request (Admin only)"""
    serializer = DecisionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    participation_request = services.decide(
        request_id,
        serializer.validated_data['decision'],
        decided_by=request.user,
    )
    return Response({
        'message': f'The participation request has been {participation_request.status}.',
        'request': ParticipationRequestSerializer(participation_request).data
    })
