import secrets

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class Role(models.TextChoices):
    ADMIN = "admin", "Admin"
    VOLUNTEER = "volunteer", "Volunteer"


class CustomUser(AbstractUser):
    full_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True, null=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.VOLUNTEER)

    @property
    def is_placement_admin(self) -> bool:
        return bool(self.is_staff or self.is_superuser or self.role == Role.ADMIN)

    @property
    def display_name(self) -> str:
        return self.full_name or self.get_full_name() or self.username or self.email

    def __str__(self):
        return self.email or self.username


def _generate_session_key() -> str:
    return secrets.token_hex(20)


class UserSession(models.Model):
    """
    Per-login API session token, similar to DRF's Token model but allows multiple tokens per user.
    """

    key = models.CharField(max_length=40, primary_key=True, default=_generate_session_key, editable=False)
    user = models.ForeignKey(CustomUser, related_name="sessions", on_delete=models.CASCADE)
    created_at = models.DateTimeField(auto_now_add=True)
    last_seen = models.DateTimeField(auto_now=True)
    revoked_at = models.DateTimeField(blank=True, null=True)
    user_agent = models.TextField(blank=True, null=True)
    ip_address = models.CharField(max_length=100, blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]

    @property
    def is_active(self) -> bool:
        return self.revoked_at is None

    def revoke(self):
        if not self.revoked_at:
            self.revoked_at = timezone.now()
            self.save(update_fields=["revoked_at"])

    def __str__(self):
        return f"Session for {self.user_id} ({'active' if self.is_active else 'revoked'})"
