from rest_framework import serializers
from .models import User, AccessStatus


class UserSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='user_id', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'role', 'access_status', 'created_at']
        read_only_fields = ['id', 'role', 'access_status', 'created_at']


class UserProfileUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    # Uniqueness is checked by the service so it maps to a stable error code
    email = serializers.EmailField(required=False)

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name cannot be blank.")
        return value


class UserAccessSerializer(serializers.Serializer):
    access_status = serializers.ChoiceField(choices=AccessStatus.choices, required=False)
