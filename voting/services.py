import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from authentication.models import User
from electionconsole.exceptions import (
    DuplicateVote, ElectionNotActive, InvalidCandidate, get_or_not_found,
)
from elections.models import Election
from participation.models import ParticipationRequest, RequestStatus
from .models import Vote, seal_ballot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteReceipt:
    """Confirmation handed back to the voter. Never carries the choice."""
    vote_id: str
    election_id: str
    cast_at: datetime


def eligible_candidates(election):
    """User ids of the approved candidacy requests, in request order."""
    user_ids = ParticipationRequest.objects.filter(
        election=election,
        status=RequestStatus.APPROVED,
    ).order_by('requested_at', 'id').values_list('user__user_id', flat=True)
    return [str(user_id) for user_id in user_ids]


def has_voted(user, election):
    return Vote.objects.filter(voter=user, election=election).exists()


def cast_vote(user_id, election_id, candidate_id, now=None, candidates=None):
    """
    Record one ballot for ``user_id`` in ``election_id``.

    ``candidates`` replaces the approved-request candidate set when the
    integrator keeps its own candidate list.
    """
    now = now or timezone.now()
    user = get_or_not_found(User.objects.all(), 'User', user_id=user_id)
    election = get_or_not_found(Election.objects.all(), 'Election', election_id=election_id)

    if not election.is_active(now):
        raise ElectionNotActive()

    if candidates is None:
        eligible = eligible_candidates(election)
    else:
        eligible = [str(candidate) for candidate in candidates]

    candidate_id = str(candidate_id)
    if candidate_id not in eligible:
        raise InvalidCandidate()

    try:
        with transaction.atomic():
            if has_voted(user, election):
                raise DuplicateVote()

            vote = Vote(voter=user, election=election, candidate_id=candidate_id, cast_at=now)
            vote.encrypted_vote_data = seal_ballot({
                'vote_id': str(vote.vote_id),
                'voter_id': str(user.user_id),
                'election_id': str(election.election_id),
                'candidate_id': candidate_id,
                'timestamp': now.isoformat(),
            })
            vote.save(force_insert=True)
    except IntegrityError:
        logger.warning('Concurrent duplicate vote by user %s in election %s',
                       user.user_id, election.election_id)
        raise DuplicateVote()

    logger.info('Vote %s recorded in election %s', vote.vote_id, election.election_id)
    return VoteReceipt(
        vote_id=str(vote.vote_id),
        election_id=str(election.election_id),
        cast_at=vote.cast_at,
    )


def tally(election_id, candidates=None):
    """
    Vote count per candidate id. Every eligible candidate is listed, with
    zero when nobody voted for them.
    """
    election = get_or_not_found(Election.objects.all(), 'Election', election_id=election_id)

    if candidates is None:
        eligible = eligible_candidates(election)
    else:
        eligible = [str(candidate) for candidate in candidates]

    counts = dict(
        Vote.objects.filter(election=election)
        .order_by()
        .values('candidate_id')
        .annotate(count=Count('id'))
        .values_list('candidate_id', 'count')
    )

    results = {candidate: counts.pop(candidate, 0) for candidate in dict.fromkeys(eligible)}
    # Votes for candidates that have since left the eligible set still count
    for candidate in sorted(counts):
        results[candidate] = counts[candidate]
    return results
