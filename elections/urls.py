from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'elections'

router = SimpleRouter()
router.register(r'elections', views.ElectionViewSet, basename='election')

urlpatterns = [
    # API endpoints
    path('', include(router.urls)),
]
