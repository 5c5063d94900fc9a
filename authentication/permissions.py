from rest_framework import permissions


def is_console_admin(user):
    return bool(user and user.is_authenticated and getattr(user, 'is_admin', False))


class IsConsoleAdmin(permissions.BasePermission):
    """
    Allows access only to admins or superusers.
    """
    message = 'Admin access required'

    def has_permission(self, request, view):
        return is_console_admin(request.user)
