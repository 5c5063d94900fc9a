from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from elections.models import Election
import uuid


class RequestStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'


# States a request can no longer leave
TERMINAL_STATUSES = (RequestStatus.APPROVED, RequestStatus.REJECTED)


class ParticipationRequest(models.Model):
    """
    A user's request to stand as a candidate in an election, reviewed by an
    admin. Moves from pending to approved or rejected exactly once.
    """
    request_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='participation_requests'
    )
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name='participation_requests')
    requested_at = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=RequestStatus.choices, default=RequestStatus.PENDING)
    decided_at = models.DateTimeField(null=True, blank=True)
    decided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='decided_participation_requests'
    )

    @property
    def is_pending(self):
        return self.status == RequestStatus.PENDING

    # Display fields are looked up through the references, never copied
    @property
    def user_name(self):
        return self.user.name

    @property
    def user_email(self):
        return self.user.email

    @property
    def election_title(self):
        return self.election.title

    def __str__(self):
        return f"Request {self.request_id}: {self.user.name} for {self.election.title} ({self.status})"

    class Meta:
        db_table = 'participation_request'
        ordering = ['requested_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'election'],
                condition=Q(status__in=['pending', 'approved']),
                name='unique_open_participation_request',
            ),
        ]
