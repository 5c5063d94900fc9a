"""
Candidacy request workflow.

A request starts ``pending`` and an admin moves it to ``approved`` or
``rejected``; both are final. At most one pending or approved request may
exist per (user, election). The database enforces that with a partial
unique index, so the check in ``submit_request`` only produces the clean
error and a concurrent duplicate surfaces as an IntegrityError.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from authentication.models import User
from electionconsole.exceptions import (
    DuplicateRequest, ElectionNotOpen, InvalidTransition, get_or_not_found,
)
from elections.models import Election
from .models import ParticipationRequest, RequestStatus, TERMINAL_STATUSES

logger = logging.getLogger(__name__)

OPEN_STATUSES = [RequestStatus.PENDING, RequestStatus.APPROVED]


def has_open_request(user, election):
    return ParticipationRequest.objects.filter(
        user=user, election=election, status__in=OPEN_STATUSES
    ).exists()


def submit_request(user_id, election_id, now=None):
    now = now or timezone.now()
    user = get_or_not_found(User.objects.all(), 'User', user_id=user_id)
    election = get_or_not_found(Election.objects.all(), 'Election', election_id=election_id)

    if not election.is_active(now):
        raise ElectionNotOpen()

    try:
        with transaction.atomic():
            if has_open_request(user, election):
                raise DuplicateRequest()

            participation_request = ParticipationRequest.objects.create(
                user=user,
                election=election,
                requested_at=now,
            )
    except IntegrityError:
        logger.warning('Concurrent duplicate request by user %s for election %s',
                       user.user_id, election.election_id)
        raise DuplicateRequest()

    logger.info('User %s requested candidacy in election %s (request %s)',
                user.user_id, election.election_id, participation_request.request_id)
    return participation_request


def decide(request_id, decision, decided_by=None, now=None):
    """
    Approve or reject a pending request. The status change is a conditional
    update, so of two concurrent decisions only one succeeds.
    """
    now = now or timezone.now()
    participation_request = get_or_not_found(
        ParticipationRequest.objects.all(), 'Participation request', request_id=request_id
    )

    if decision not in TERMINAL_STATUSES:
        raise InvalidTransition(f'Cannot move a request to "{decision}".')

    if not participation_request.is_pending:
        raise InvalidTransition(
            f'Request is already {participation_request.status} and cannot change again.'
        )

    with transaction.atomic():
        updated = ParticipationRequest.objects.filter(
            pk=participation_request.pk,
            status=RequestStatus.PENDING,
        ).update(status=decision, decided_at=now, decided_by=decided_by)

    if not updated:
        participation_request.refresh_from_db(fields=['status'])
        raise InvalidTransition(
            f'Request is already {participation_request.status} and cannot change again.'
        )

    participation_request.refresh_from_db()
    logger.info('Participation request %s %s', participation_request.request_id, decision)
    return participation_request


def list_requests(election_id=None, status=None, user_id=None, search=None):
    """Requests ordered by request time, oldest first."""
    requests = ParticipationRequest.objects.select_related('user', 'election')
    if election_id:
        requests = requests.filter(election__election_id=election_id)
    if status:
        requests = requests.filter(status=status)
    if user_id:
        requests = requests.filter(user__user_id=user_id)
    if search:
        requests = requests.filter(
            Q(user__name__icontains=search) | Q(election__title__icontains=search)
        )
    return requests.order_by('requested_at', 'id')
