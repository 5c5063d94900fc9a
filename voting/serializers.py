from rest_framework import serializers
from authentication.models import User


class CastVoteSerializer(serializers.Serializer):
    candidate_id = serializers.CharField(max_length=64)


class VoteReceiptSerializer(serializers.Serializer):
    vote_id = serializers.CharField()
    election_id = serializers.CharField()
    cast_at = serializers.DateTimeField()


class BallotCandidateSerializer(serializers.ModelSerializer):
    candidate_id = serializers.UUIDField(source='user_id', read_only=True)

    class Meta:
        model = User
        fields = ['candidate_id', 'name', 'email']


class TallySerializer(serializers.Serializer):
    election_id = serializers.CharField()
    election_title = serializers.CharField()
    status = serializers.CharField()
    total_votes = serializers.IntegerField()
    results = serializers.DictField(child=serializers.IntegerField())
