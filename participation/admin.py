from django.contrib import admin
from .models import ParticipationRequest, RequestStatus
from .services import decide


@admin.register(ParticipationRequest)
class ParticipationRequestAdmin(admin.ModelAdmin):
    list_display = ['request_id', 'get_user_name', 'get_election_title', 'status', 'requested_at', 'decided_at']
    list_filter = ['status', 'requested_at']
    search_fields = ['user__name', 'user__email', 'election__title']
    date_hierarchy = 'requested_at'
    readonly_fields = ['request_id', 'user', 'election', 'requested_at', 'status', 'decided_at', 'decided_by']
    actions = ['approve_requests', 'reject_requests']

    def get_user_name(self, obj):
        return obj.user.name
    get_user_name.short_description = 'User'

    def get_election_title(self, obj):
        return obj.election.title
    get_election_title.short_description = 'Election'

    def _decide_pending(self, request, queryset, decision):
        pending = queryset.filter(status=RequestStatus.PENDING)
        count = 0
        for participation_request in pending:
            decide(participation_request.request_id, decision, decided_by=request.user)
            count += 1
        return count

    def approve_requests(self, request, queryset):
        """Approve selected pending requests"""
        count = self._decide_pending(request, queryset, RequestStatus.APPROVED)
        self.message_user(request, f'{count} request(s) approved.', level='SUCCESS')
    approve_requests.short_description = "Approve selected pending requests"

    def reject_requests(self, request, queryset):
        """Reject selected pending requests"""
        count = self._decide_pending(request, queryset, RequestStatus.REJECTED)
        self.message_user(request, f'{count} request(s) rejected.', level='WARNING')
    reject_requests.short_description = "Reject selected pending requests"

    def has_add_permission(self, request):
        return False
