from django.urls import path
from . import views

app_name = 'voting'

urlpatterns = [
    # Voting endpoints
    path('elections/<uuid:election_id>/votes/', views.CastVoteView.as_view(), name='cast_vote'),
    path('elections/<uuid:election_id>/ballot/', views.get_ballot, name='get_ballot'),
    path('elections/<uuid:election_id>/tally/', views.election_tally, name='election_tally'),
]
