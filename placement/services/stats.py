from django.utils import timezone

from placement.models import Applicant, AttendanceRecord, Campaign, Test


def dashboard_counts():
    """Headline numbers for the console dashboard."""
    today = timezone.localdate()
    return {
        "campaigns": Campaign.objects.count(),
        "tests": Test.objects.count(),
        "upcoming_tests": Test.objects.filter(test_date__gte=today).count(),
        "applicants": Applicant.objects.count(),
        "attendance_today": AttendanceRecord.objects.filter(marked_at__date=today).count(),
    }
