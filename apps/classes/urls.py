"""URL routing for class sessions."""

from django.urls import include, path  # type: ignore
from rest_framework.routers import SimpleRouter  # type: ignore

from .views import ClassSessionViewSet

router = SimpleRouter()
router.register(r'', ClassSessionViewSet, basename='class-session')

urlpatterns = [path('', include(router.urls))]
