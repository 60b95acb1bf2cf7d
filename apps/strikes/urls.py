"""URL routing for the strike policy."""

from django.urls import path  # type: ignore

from .views import NoShowPolicyView

urlpatterns = [
    path('no-show-policy/', NoShowPolicyView.as_view(), name='no-show-policy'),
]
