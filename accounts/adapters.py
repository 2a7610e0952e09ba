import logging

from allauth.account.adapter import DefaultAccountAdapter
from django.conf import settings

logger = logging.getLogger(__name__)


class AccountAdapter(DefaultAccountAdapter):
    def is_open_for_signup(self, request):
        # Accounts are provisioned by admins from the console.
        return False

    def is_login_allowed(self, user):
        if not getattr(settings, "BLOCK_INACTIVE_VOLUNTEERS", False):
            return True

        if not user.is_active:
            logger.info("Blocked inactive volunteer login: user_id=%s", user.pk)
            return False

        return True

    def pre_login(self, request, user, **kwargs):
        if not self.is_login_allowed(user):
            return self.respond_user_inactive(request, user)
        return super().pre_login(request, user, **kwargs)
