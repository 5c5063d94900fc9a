from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone
import uuid


class ElectionStatus(models.TextChoices):
    UPCOMING = 'upcoming', 'Upcoming'
    ACTIVE = 'active', 'Active'
    COMPLETED = 'completed', 'Completed'


def election_status(start_date, end_date, now):
    """
    Status of an election window at ``now``. Both bounds are inclusive for
    the active state.
    """
    if now > end_date:
        return ElectionStatus.COMPLETED
    if start_date <= now:
        return ElectionStatus.ACTIVE
    return ElectionStatus.UPCOMING


class ElectionQuerySet(models.QuerySet):
    def with_status(self, status, now=None):
        """Filter by the status each election has at ``now``."""
        now = now or timezone.now()
        if status == ElectionStatus.UPCOMING:
            return self.filter(start_date__gt=now)
        if status == ElectionStatus.ACTIVE:
            return self.filter(start_date__lte=now, end_date__gte=now)
        if status == ElectionStatus.COMPLETED:
            return self.filter(end_date__lt=now)
        raise ValueError(f'Unknown election status: {status}')


class Election(models.Model):
    """
    Election model. Status is never stored; it is derived from the time
    window on every read.
    """
    election_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_elections'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = ElectionQuerySet.as_manager()

    def status_at(self, now=None):
        return election_status(self.start_date, self.end_date, now or timezone.now())

    @property
    def status(self):
        return self.status_at()

    def is_active(self, now=None):
        """Whether ``now`` falls inside the voting window."""
        return self.status_at(now) == ElectionStatus.ACTIVE

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'election'
        ordering = ['created_at', 'id']
        constraints = [
            models.CheckConstraint(
                condition=Q(start_date__lte=F('end_date')),
                name='election_start_not_after_end',
            ),
        ]
