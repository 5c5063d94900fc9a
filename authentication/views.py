from rest_framework import status, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .permissions import IsConsoleAdmin, is_console_admin
from .serializers import UserSerializer, UserProfileUpdateSerializer, UserAccessSerializer


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated, IsConsoleAdmin])
def user_list(request):
    """List users (Admin only), optionally filtered by role, access status or search term"""
    users = services.list_users(
        role=request.query_params.get('role'),
        access_status=request.query_params.get('access_status'),
        search=request.query_params.get('search'),
    )
    serializer = UserSerializer(users, many=True)
    return Response(serializer.data)


class UserDetailView(APIView):
    """Read or edit a user's profile (Admin, or the user themselves)"""
    permission_classes = [permissions.IsAuthenticated]

    def _check_access(self, request, user_id):
        if not (is_console_admin(request.user) or str(request.user.user_id) == str(user_id)):
            return Response({
                'error': 'You can only access your own profile'
            }, status=status.HTTP_403_FORBIDDEN)
        return None

    def get(self, request, user_id):
        denied = self._check_access(request, user_id)
        if denied:
            return denied
        user = services.get_user(user_id)
        return Response(UserSerializer(user).data)

    def patch(self, request, user_id):
        denied = self._check_access(request, user_id)
        if denied:
            return denied

        serializer = UserProfileUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.update_user_profile(user_id, **serializer.validated_data)
        return Response(UserSerializer(user).data)


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated, IsConsoleAdmin])
def set_user_access(request, user_id):
    """Block or unblock a user (Admin only). Without a status the current one is toggled."""
    serializer = UserAccessSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    access_status = serializer.validated_data.get('access_status')
    if access_status:
        user = services.set_user_access(user_id, access_status)
    else:
        user = services.toggle_user_access(user_id)

    return Response({
        'message': f'User {user.name} is now {user.access_status}',
        'user': UserSerializer(user).data
    })
