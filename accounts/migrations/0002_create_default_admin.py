import os

from django.contrib.auth.hashers import make_password
from django.db import migrations


DEFAULT_USERNAME = os.getenv("PLACEMENT_DEFAULT_ADMIN_USERNAME", "admin")
DEFAULT_EMAIL = os.getenv("PLACEMENT_DEFAULT_ADMIN_EMAIL", "admin@example.com")


def _default_password():
    return os.getenv("PLACEMENT_DEFAULT_ADMIN_PASSWORD", "")


def create_default_admin(apps, _schema_editor):
    """
    Seed a console admin when PLACEMENT_DEFAULT_ADMIN_PASSWORD is set.
    Without a password nothing is created, so fresh databases stay empty.
    """
    password = _default_password()
    if not password:
        return

    User = apps.get_model("accounts", "CustomUser")
    user, created = User.objects.get_or_create(
        username=DEFAULT_USERNAME,
        defaults={
            "email": DEFAULT_EMAIL,
            "full_name": "Console Administrator",
            "role": "admin",
            "is_staff": True,
            "is_superuser": True,
            "is_active": True,
            "password": make_password(password),
        },
    )
    if not created:
        user.email = user.email or DEFAULT_EMAIL
        user.role = "admin"
        user.is_staff = True
        user.is_superuser = True
        user.is_active = True
        user.password = make_password(password)
        user.save()


def remove_default_admin(apps, _schema_editor):
    User = apps.get_model("accounts", "CustomUser")
    User.objects.filter(username=DEFAULT_USERNAME, email=DEFAULT_EMAIL).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_default_admin, remove_default_admin),
    ]
