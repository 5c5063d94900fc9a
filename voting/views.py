from rest_framework import status, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.views import APIView
from django.utils import timezone

from authentication.models import User
from authentication.permissions import is_console_admin
from elections.models import ElectionStatus
from elections.services import get_election
from . import services
from .serializers import (
    CastVoteSerializer, VoteReceiptSerializer, BallotCandidateSerializer, TallySerializer
)


class CastVoteView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, election_id):
        serializer = CastVoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        receipt = services.cast_vote(
            request.user.user_id,
            election_id,
            serializer.validated_data['candidate_id'],
        )

        return Response({
            'message': 'Vote cast successfully',
            'vote': VoteReceiptSerializer(receipt).data
        }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def get_ballot(request, election_id):
    """Get the eligible candidates of an election and whether the caller already voted"""
    election = get_election(election_id)
    candidate_ids = services.eligible_candidates(election)

    users = {str(user.user_id): user for user in User.objects.filter(user_id__in=candidate_ids)}
    candidates = [users[candidate_id] for candidate_id in candidate_ids if candidate_id in users]

    return Response({
        'election_id': str(election.election_id),
        'election_title': election.title,
        'status': election.status_at(timezone.now()),
        'candidates': BallotCandidateSerializer(candidates, many=True).data,
        'has_voted': services.has_voted(request.user, election),
    })


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def election_tally(request, election_id):
    """Vote counts per candidate. Admins may look at any time, voters once the election is completed."""
    election = get_election(election_id)
    election_status = election.status_at(timezone.now())

    if election_status != ElectionStatus.COMPLETED and not is_console_admin(request.user):
        return Response({
            'error': 'Election results are only available for completed elections'
        }, status=status.HTTP_403_FORBIDDEN)

    results = services.tally(election.election_id)
    serializer = TallySerializer({
        'election_id': str(election.election_id),
        'election_title': election.title,
        'status': election_status,
        'total_votes': sum(results.values()),
        'results': results,
    })
    return Response(serializer.data)
