from django.core.exceptions import ValidationError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class ElectionConsoleError(APIException):
    """Base class for every recoverable domain failure."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request could not be completed.'
    default_code = 'error'


class NotFound(ElectionConsoleError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class InvalidRange(ElectionConsoleError):
    default_detail = 'Election start must not be after its end.'
    default_code = 'invalid_range'


class InvalidTransition(ElectionConsoleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Only pending requests can be approved or rejected.'
    default_code = 'invalid_transition'


class DuplicateRequest(ElectionConsoleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'A pending or approved request already exists for this election.'
    default_code = 'duplicate_request'


class DuplicateVote(ElectionConsoleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'You have already voted in this election.'
    default_code = 'duplicate_vote'


class InvalidCandidate(ElectionConsoleError):
    default_detail = 'Candidate is not eligible in this election.'
    default_code = 'invalid_candidate'


class ElectionNotActive(ElectionConsoleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Election is not currently accepting votes.'
    default_code = 'election_not_active'


class ElectionNotOpen(ElectionConsoleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Election is not currently accepting participation requests.'
    default_code = 'election_not_open'


class EmailInUse(ElectionConsoleError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'A user with this email already exists.'
    default_code = 'email_in_use'


def get_or_not_found(queryset, label, **lookup):
    """
    Fetch a single row by its public identifier, raising NotFound for
    unknown or malformed identifiers.
    """
    try:
        return queryset.get(**lookup)
    except (queryset.model.DoesNotExist, ValidationError, ValueError, TypeError):
        raise NotFound(f'{label} not found.')


def console_exception_handler(exc, context):
    """
    Render domain errors as {"error": message, "code": stable_code} so a
    client can branch on the code instead of the message text.
    """
    response = exception_handler(exc, context)
    if response is not None and isinstance(exc, ElectionConsoleError):
        response.data = {
            'error': str(exc.detail),
            'code': exc.get_codes(),
        }
    return response
