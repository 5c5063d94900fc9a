import logging

from django.db import IntegrityError, transaction
from django.db.models import Q

from electionconsole.exceptions import EmailInUse, get_or_not_found
from .models import User, AccessStatus

logger = logging.getLogger(__name__)


def list_users(role=None, access_status=None, search=None):
    users = User.objects.all()
    if role:
        users = users.filter(role=role)
    if access_status:
        users = users.filter(access_status=access_status)
    if search:
        users = users.filter(Q(name__icontains=search) | Q(email__icontains=search))
    return users.order_by('created_at', 'id')


def get_user(user_id):
    return get_or_not_found(User.objects.all(), 'User', user_id=user_id)


def set_user_access(user_id, access_status):
    """Block or unblock a user. Setting the current status again is a no-op."""
    if access_status not in AccessStatus.values:
        raise ValueError(f'Unknown access status: {access_status}')

    with transaction.atomic():
        user = get_or_not_found(
            User.objects.select_for_update(), 'User', user_id=user_id
        )
        if user.access_status == access_status:
            return user

        user.access_status = access_status
        user.save(update_fields=['access_status', 'is_active', 'updated_at'])

    logger.info('User %s access set to %s', user.user_id, access_status)
    return user


def toggle_user_access(user_id):
    with transaction.atomic():
        user = get_or_not_found(
            User.objects.select_for_update(), 'User', user_id=user_id
        )
        if user.access_status == AccessStatus.ACTIVE:
            user.access_status = AccessStatus.BLOCKED
        else:
            user.access_status = AccessStatus.ACTIVE
        user.save(update_fields=['access_status', 'is_active', 'updated_at'])

    logger.info('User %s access toggled to %s', user.user_id, user.access_status)
    return user


def update_user_profile(user_id, name=None, email=None):
    user = get_user(user_id)
    update_fields = []

    if name is not None and name != user.name:
        user.name = name
        update_fields.append('name')

    if email is not None:
        email = User.objects.normalize_email(email)
        if email != user.email:
            if User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists():
                raise EmailInUse()
            user.email = email
            update_fields.append('email')

    if not update_fields:
        return user

    try:
        with transaction.atomic():
            user.save(update_fields=update_fields + ['updated_at'])
    except IntegrityError:
        raise EmailInUse()

    logger.info('User %s updated %s', user.user_id, ', '.join(update_fields))
    return user
