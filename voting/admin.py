from django.contrib import admin
from .models import Vote


@admin.register(Vote)
class VoteAdmin(admin.ModelAdmin):
    list_display = ['vote_id', 'get_voter_name', 'election', 'cast_at', 'get_verified']
    list_filter = ['cast_at', 'election']
    search_fields = ['voter__name', 'election__title']
    date_hierarchy = 'cast_at'
    readonly_fields = ['vote_id', 'voter', 'election', 'candidate_id', 'encrypted_vote_data', 'cast_at']

    def get_voter_name(self, obj):
        return obj.voter.name
    get_voter_name.short_description = 'Voter'

    def get_verified(self, obj):
        return obj.verify()
    get_verified.short_description = 'Verified'
    get_verified.boolean = True

    # The ledger is append-only
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
