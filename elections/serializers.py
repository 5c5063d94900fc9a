from rest_framework import serializers
from .models import Election


class ElectionSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source='election_id', read_only=True)
    status = serializers.SerializerMethodField()
    created_by = serializers.SerializerMethodField()

    class Meta:
        model = Election
        fields = ['id', 'title', 'description', 'start_date', 'end_date', 'status', 'created_by', 'created_at']

    def get_status(self, obj):
        # Recomputed per read against the request's clock
        return obj.status_at(self.context.get('now'))

    def get_created_by(self, obj):
        if obj.created_by is None:
            return None
        return str(obj.created_by.user_id)


class ElectionCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Title cannot be blank.")
        return value


class ElectionSummarySerializer(serializers.Serializer):
    total = serializers.IntegerField()
    upcoming = serializers.IntegerField()
    active = serializers.IntegerField()
    completed = serializers.IntegerField()
