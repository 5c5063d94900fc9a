from django.urls import path
from . import views

app_name = 'participation'

urlpatterns = [
    path('participation-requests/', views.ParticipationRequestListView.as_view(), name='request_list'),
    path('participation-requests/<uuid:request_id>/decision/', views.decide_request, name='decide_request'),
]
