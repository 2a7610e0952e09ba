import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone
from rest_framework import exceptions
from rest_framework.authentication import TokenAuthentication

from accounts.models import UserSession

logger = logging.getLogger(__name__)


class UserSessionAuthentication(TokenAuthentication):
    """
    Authenticate console API calls with a per-login UserSession key.

    A session idle for longer than PLACEMENT_SESSION_IDLE_MINUTES is revoked on
    its next use; 0 keeps sessions alive until logout.
    """

    keyword = "Token"
    model = UserSession

    def authenticate_credentials(self, key):
        session = self.model.objects.select_related("user").filter(key=key).first()
        if session is None:
            raise exceptions.AuthenticationFailed("Invalid token.")
        if session.revoked_at is not None:
            raise exceptions.AuthenticationFailed("Session revoked.")
        if not session.user.is_active:
            raise exceptions.AuthenticationFailed("User inactive or deleted.")

        idle_minutes = getattr(settings, "PLACEMENT_SESSION_IDLE_MINUTES", 0)
        if idle_minutes and timezone.now() - session.last_seen > timedelta(minutes=idle_minutes):
            session.revoke()
            logger.info("Expired idle API session for user_id=%s", session.user_id)
            raise exceptions.AuthenticationFailed("Session expired.")

        session.save(update_fields=["last_seen"])
        return (session.user, session)
