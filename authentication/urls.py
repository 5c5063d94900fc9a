from django.urls import path
from . import views

app_name = 'authentication'

urlpatterns = [
    # User management
    path('users/', views.user_list, name='user_list'),
    path('users/<uuid:user_id>/', views.UserDetailView.as_view(), name='user_detail'),
    path('users/<uuid:user_id>/access/', views.set_user_access, name='user_access'),
]
