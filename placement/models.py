from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


# ---------- ENUM TYPES ----------

class AttendanceStatus(models.TextChoices):
    PRESENT = 'present', 'Present'


# ---------- MAIN TABLES ----------


class Campaign(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    start_date = models.DateField()
    end_date = models.DateField()
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="campaigns_created",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-pk"]

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "End date cannot be before the start date."})


class Cycle(models.Model):
    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name="cycles")
    name = models.CharField(max_length=255)
    cycle_number = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    start_date = models.DateField(blank=True, null=True)
    end_date = models.DateField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["cycle_number", "pk"]
        unique_together = ("campaign", "cycle_number")

    def __str__(self):
        return f"{self.campaign} - {self.name}"

    def clean(self):
        super().clean()
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "End date cannot be before the start date."})


class Test(models.Model):
    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name="tests")
    cycle = models.ForeignKey(Cycle, on_delete=models.CASCADE, related_name="tests")
    name = models.CharField(max_length=255)
    test_date = models.DateField()
    test_time = models.TimeField()
    duration_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="tests_created",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["test_date", "test_time", "pk"]

    def __str__(self):
        return f"{self.name} ({self.test_date:%Y-%m-%d})"

    def clean(self):
        super().clean()
        if self.cycle_id and self.campaign_id and self.cycle.campaign_id != self.campaign_id:
            raise ValidationError({"cycle": "Cycle does not belong to the selected campaign."})

    @property
    def is_upcoming(self):
        return self.test_date >= timezone.localdate()


class Venue(models.Model):
    test = models.ForeignKey(Test, on_delete=models.CASCADE, related_name="venues")
    name = models.CharField(max_length=255)
    capacity = models.IntegerField(validators=[MinValueValidator(1)])
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["pk"]

    def __str__(self):
        return f"{self.name} ({self.capacity})"


class Applicant(models.Model):
    test = models.ForeignKey(Test, on_delete=models.CASCADE, related_name="applicants")
    roll_number = models.CharField(max_length=100)
    name = models.CharField(max_length=255)
    email = models.CharField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=50, blank=True, null=True)
    venue = models.ForeignKey(
        Venue,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="applicants",
    )
    seat_number = models.CharField(max_length=20, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["pk"]
        unique_together = ("test", "roll_number")

    def __str__(self):
        return f"{self.roll_number} - {self.name}"


class AttendanceRecord(models.Model):
    applicant = models.ForeignKey(Applicant, on_delete=models.CASCADE, related_name="attendance")
    test = models.ForeignKey(Test, on_delete=models.CASCADE, related_name="attendance")
    status = models.CharField(
        max_length=20,
        choices=AttendanceStatus.choices,
        default=AttendanceStatus.PRESENT,
    )
    marked_at = models.DateTimeField(default=timezone.now)
    marked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="attendance_marked",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )

    class Meta:
        ordering = ["-marked_at", "-pk"]
        constraints = [
            models.UniqueConstraint(fields=["applicant", "test"], name="unique_attendance_per_test"),
        ]

    def __str__(self):
        return f"{self.applicant} @ {self.test}: {self.get_status_display()}"


class RosterUpload(models.Model):  # Upload history for applicant rosters
    file_name = models.CharField(max_length=255)
    test = models.ForeignKey(Test, on_delete=models.CASCADE, related_name="roster_uploads")
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="roster_uploads",
        on_delete=models.SET_NULL,
        null=True,
    )
    uploaded_at = models.DateTimeField(auto_now_add=True)
    records_created = models.IntegerField(default=0)
    records_updated = models.IntegerField(default=0)
    duplicates_removed = models.IntegerField(default=0)
    rows_skipped = models.IntegerField(default=0)

    class Meta:
        ordering = ["-uploaded_at", "-pk"]

    def __str__(self):
        return f"{self.file_name} by {self.uploaded_by} on {self.uploaded_at:%Y-%m-%d %H:%M}"
