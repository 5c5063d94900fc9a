import logging

from django.db import transaction
from django.utils import timezone

from electionconsole.exceptions import InvalidRange, get_or_not_found
from .models import Election, ElectionStatus

logger = logging.getLogger(__name__)


@transaction.atomic
def create_election(title, description, start_date, end_date, created_by=None):
    if start_date > end_date:
        raise InvalidRange()

    election = Election.objects.create(
        title=title,
        description=description or '',
        start_date=start_date,
        end_date=end_date,
        created_by=created_by,
    )
    logger.info('Created election %s "%s"', election.election_id, election.title)
    return election


def list_elections(now=None, status=None, search=None):
    """
    Elections in creation order. ``status`` filters on the status each
    election has at ``now``.
    """
    elections = Election.objects.all()
    if status:
        elections = elections.with_status(status, now or timezone.now())
    if search:
        elections = elections.filter(title__icontains=search)
    return elections.order_by('created_at', 'id')


def get_election(election_id):
    return get_or_not_found(Election.objects.all(), 'Election', election_id=election_id)


def election_summary(now=None):
    now = now or timezone.now()
    elections = Election.objects.all()
    return {
        'total': elections.count(),
        ElectionStatus.UPCOMING.value: elections.with_status(ElectionStatus.UPCOMING, now).count(),
        ElectionStatus.ACTIVE.value: elections.with_status(ElectionStatus.ACTIVE, now).count(),
        ElectionStatus.COMPLETED.value: elections.with_status(ElectionStatus.COMPLETED, now).count(),
    }
