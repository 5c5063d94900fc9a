from rest_framework import serializers
from .models import ParticipationRequest, RequestStatus


class ParticipationRequestSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='request_id', read_only=True)
    user_id = serializers.UUIDField(source='user.user_id', read_only=True)
    user_name = serializers.CharField(read_only=True)
    user_email = serializers.EmailField(read_only=True)
    election_id = serializers.UUIDField(source='election.election_id', read_only=True)
    election_title = serializers.CharField(read_only=True)
    decided_by = serializers.SerializerMethodField()

    class Meta:
        model = ParticipationRequest
        fields = [
            'id', 'user_id', 'user_name', 'user_email',
            'election_id', 'election_title',
            'status', 'requested_at', 'decided_at', 'decided_by'
        ]

    def get_decided_by(self, obj):
        if obj.decided_by is None:
            return None
        return str(obj.decided_by.user_id)


class ParticipationRequestCreateSerializer(serializers.Serializer):
    election_id = serializers.UUIDField()
    # Admins may file a request on behalf of another user
    user_id = serializers.UUIDField(required=False)


class DecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[
        (RequestStatus.APPROVED.value, RequestStatus.APPROVED.label),
        (RequestStatus.REJECTED.value, RequestStatus.REJECTED.label),
    ])


class ParticipationRequestFilterSerializer(serializers.Serializer):
    election_id = serializers.UUIDField(required=False)
    user_id = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=RequestStatus.choices, required=False)
    search = serializers.CharField(required=False, allow_blank=True)
