import re

from django.core.exceptions import ValidationError
from django.utils.translation import gettext as _

CHARACTER_CLASSES = (
    ("lowercase letter", re.compile(r"[a-z]")),
    ("uppercase letter", re.compile(r"[A-Z]")),
    ("digit", re.compile(r"\d")),
    ("symbol", re.compile(r"[^\w\s]")),
)


class ComplexityPasswordValidator:
    """
    Require a password to mix character classes (lowercase, uppercase, digit,
    symbol). All four are required unless OPTIONS lowers required_classes.
    """

    def __init__(self, required_classes=len(CHARACTER_CLASSES)):
        self.required_classes = max(1, min(int(required_classes), len(CHARACTER_CLASSES)))

    def missing_classes(self, password):
        return [label for label, pattern in CHARACTER_CLASSES if not pattern.search(password)]

    def validate(self, password, user=None):
        if not password:
            return
        missing = self.missing_classes(password)
        present = len(CHARACTER_CLASSES) - len(missing)
        if present >= self.required_classes:
            return
        raise ValidationError(
            _("This password is missing: %(missing)s.") % {"missing": ", ".join(missing)},
            code="password_no_complexity",
        )

    def get_help_text(self):
        if self.required_classes == len(CHARACTER_CLASSES):
            return _(
                "Your password must contain at least one lowercase letter, one uppercase letter, one digit, and one symbol."
            )
        return _(
            "Your password must mix at least %(count)d of: lowercase letters, uppercase letters, digits, symbols."
        ) % {"count": self.required_classes}
