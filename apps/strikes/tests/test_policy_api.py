"""Integration tests for the no-show policy endpoint."""

from __future__ import annotations

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.strikes.domain.policy import StrikeEventType
from apps.strikes.services import StrikePolicyService

User = get_user_model()


class NoShowPolicyAPITests(APITestCase):
    url = "/api/v1/strikes/no-show-policy/"

    def setUp(self) -> None:
        self.user = User.objects.create_user(username="ana", password="AnaPass123")
        self.client.force_authenticate(self.user)

    def test_clean_record(self) -> None:
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        policy = response.data["policy"]
        self.assertFalse(policy["isRestricted"])
        self.assertEqual(policy["currentWindow"]["noShows"], 0)
        self.assertIsNone(policy["currentWindow"]["restrictionUntil"])
        self.assertEqual(policy["config"]["strikeThreshold"], policy["currentWindow"]["threshold"])

    def test_restricted_after_threshold(self) -> None:
        service = StrikePolicyService()
        threshold = service.config.strike_threshold
        start = timezone.now() - timedelta(hours=1)
        for minute in range(threshold):
            service.record_event(str(self.user.pk), StrikeEventType.ABSENCE, start + timedelta(minutes=minute))

        response = self.client.get(self.url)

        window = response.data["policy"]["currentWindow"]
        self.assertTrue(response.data["policy"]["isRestricted"])
        self.assertEqual(window["noShows"], threshold)
        self.assertIsNotNone(window["restrictionUntil"])

    def test_requires_authentication(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(self.url)

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
