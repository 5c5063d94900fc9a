from django.db import models
from django.conf import settings
from django.utils import timezone
from cryptography.fernet import Fernet, InvalidToken
from elections.models import Election
import base64
import hashlib
import json
import logging
import uuid

logger = logging.getLogger(__name__)


def ballot_cipher():
    """Fernet cipher keyed from VOTE_ENCRYPTION_KEY."""
    digest = hashlib.sha256(settings.VOTE_ENCRYPTION_KEY.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def seal_ballot(vote_data):
    """Encrypt ballot content for storage alongside the vote row."""
    return ballot_cipher().encrypt(json.dumps(vote_data, sort_keys=True).encode()).decode()


class Vote(models.Model):
    """
    One ballot per voter per election. Rows are written once and never
    updated or deleted.
    """
    vote_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    voter = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='votes')
    election = models.ForeignKey(Election, on_delete=models.CASCADE, related_name='votes')
    candidate_id = models.CharField(max_length=64)
    encrypted_vote_data = models.TextField()
    cast_at = models.DateTimeField(default=timezone.now)

    def verify(self):
        """Check the sealed ballot still matches the row (for auditing purposes)"""
        try:
            decrypted_data = ballot_cipher().decrypt(self.encrypted_vote_data.encode())
            vote_data = json.loads(decrypted_data.decode())
        except (InvalidToken, ValueError) as e:
            logger.warning('Vote %s verification failed: %s', self.vote_id, e)
            return False

        return (vote_data.get('voter_id') == str(self.voter.user_id) and
                vote_data.get('election_id') == str(self.election.election_id) and
                vote_data.get('candidate_id') == self.candidate_id)

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError('Votes are immutable once cast')
        super().save(*args, **kwargs)

    def __str__(self):
        return f"Vote {self.vote_id} in {self.election.title}"

    class Meta:
        db_table = 'vote'
        unique_together = ['voter', 'election']  # One vote per voter per election
        ordering = ['cast_at', 'id']
