from datetime import date, time, timedelta
from io import BytesIO
from unittest import mock

import pandas as pd
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from placement.exceptions import StorageError
from placement.models import Applicant, AttendanceRecord, Campaign, Cycle, RosterUpload, Venue
from placement.models import Test as PlacementTest
from placement.services.exports import XLSX_CONTENT_TYPE


def _roster_upload(rows, name="roster.xlsx"):
    buffer = BytesIO()
    pd.DataFrame(rows).to_excel(buffer, index=False, engine="openpyxl")
    return SimpleUploadedFile(name, buffer.getvalue(), content_type=XLSX_CONTENT_TYPE)


def _read_xlsx(response):
    return pd.read_excel(BytesIO(response.content), dtype=str).fillna("")


class PlacementApiTestCase(TestCase):
    def setUp(self):
        cache.clear()
        User = get_user_model()
        self.admin = User.objects.create_user(
            username="admin",
            email="admin@example.com",
            password="secret",
            role="admin",
        )
        self.volunteer = User.objects.create_user(
            username="volunteer",
            email="volunteer@example.com",
            password="secret",
        )
        self.client = APIClient()
        self.client.force_authenticate(self.admin)

        self.campaign = Campaign.objects.create(
            name="Spring Intake",
            start_date=date(2026, 3, 1),
            end_date=date(2026, 3, 31),
        )
        self.cycle = Cycle.objects.create(campaign=self.campaign, name="Cycle 1", cycle_number=1)
        self.test = PlacementTest.objects.create(
            campaign=self.campaign,
            cycle=self.cycle,
            name="Round One",
            test_date=timezone.localdate() + timedelta(days=3),
            test_time=time(9, 30),
            duration_minutes=90,
        )

    def as_volunteer(self):
        client = APIClient()
        client.force_authenticate(self.volunteer)
        return client


class CampaignApiTests(PlacementApiTestCase):
    def test_admin_creates_campaign_with_creator(self):
        response = self.client.post(
            reverse("campaign-list"),
            {"name": "Autumn", "start_date": "2026-09-01", "end_date": "2026-09-30"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Campaign.objects.get(name="Autumn").created_by, self.admin)

    def test_campaign_dates_validated(self):
        response = self.client.post(
            reverse("campaign-list"),
            {"name": "Backwards", "start_date": "2026-09-30", "end_date": "2026-09-01"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("end_date", response.data)

    def test_campaigns_listed_newest_first(self):
        Campaign.objects.create(name="Newer", start_date=date(2026, 4, 1), end_date=date(2026, 4, 2))

        response = self.client.get(reverse("campaign-list"))

        self.assertEqual([c["name"] for c in response.data], ["Newer", "Spring Intake"])

    def test_volunteer_can_read_but_not_write(self):
        client = self.as_volunteer()

        self.assertEqual(client.get(reverse("campaign-list")).status_code, status.HTTP_200_OK)
        response = client.post(
            reverse("campaign-list"),
            {"name": "Nope", "start_date": "2026-09-01", "end_date": "2026-09-02"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_rejected(self):
        response = APIClient().get(reverse("campaign-list"))

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_nested_cycles_and_tests(self):
        cycles = self.client.get(reverse("campaign-cycles", args=[self.campaign.pk]))
        tests = self.client.get(reverse("campaign-tests", args=[self.campaign.pk]))

        self.assertEqual([c["cycle_number"] for c in cycles.data], [1])
        self.assertEqual([t["name"] for t in tests.data], ["Round One"])
        self.assertEqual(tests.data[0]["cycle_name"], "Cycle 1")


class CycleAndTestApiTests(PlacementApiTestCase):
    def test_duplicate_cycle_number_rejected(self):
        response = self.client.post(
            reverse("cycle-list"),
            {"campaign": self.campaign.pk, "name": "Again", "cycle_number": 1},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cycles_are_admin_only(self):
        response = self.as_volunteer().get(reverse("cycle-list"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_test_cycle_from_other_campaign_rejected(self):
        other = Campaign.objects.create(name="Other", start_date=date(2026, 1, 1), end_date=date(2026, 1, 2))

        response = self.client.post(
            reverse("test-list"),
            {
                "campaign": other.pk,
                "cycle": self.cycle.pk,
                "name": "Mismatch",
                "test_date": "2026-01-01",
                "test_time": "09:00",
                "duration_minutes": 60,
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("cycle", response.data)

    def test_create_test_records_creator(self):
        response = self.client.post(
            reverse("test-list"),
            {
                "campaign": self.campaign.pk,
                "cycle": self.cycle.pk,
                "name": "Round Two",
                "test_date": "2026-03-20",
                "test_time": "14:00",
                "duration_minutes": 45,
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(PlacementTest.objects.get(name="Round Two").created_by, self.admin)

    def test_upcoming_filter_hides_past_tests(self):
        PlacementTest.objects.create(
            campaign=self.campaign,
            cycle=self.cycle,
            name="Past",
            test_date=timezone.localdate() - timedelta(days=1),
            test_time=time(9, 0),
            duration_minutes=30,
        )

        response = self.as_volunteer().get(reverse("test-list"), {"upcoming": "1"})

        self.assertEqual([t["name"] for t in response.data], ["Round One"])

    def test_venue_capacity_must_be_positive(self):
        response = self.client.post(
            reverse("venue-list"),
            {"test": self.test.pk, "name": "Closet", "capacity": 0},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_venues_filtered_by_test(self):
        Venue.objects.create(test=self.test, name="Hall", capacity=10)

        response = self.client.get(reverse("venue-list"), {"test": self.test.pk})

        self.assertEqual([v["name"] for v in response.data], ["Hall"])

    def test_non_numeric_id_filters_match_nothing(self):
        Venue.objects.create(test=self.test, name="Hall", capacity=10)
        Applicant.objects.create(test=self.test, roll_number="R1", name="Ann")

        for name, params in (
            ("venue-list", {"test": "abc"}),
            ("applicant-list", {"test": "abc"}),
            ("attendance-list", {"test": "1; drop"}),
            ("cycle-list", {"campaign": "x"}),
            ("test-list", {"campaign": "x"}),
            ("test-list", {"cycle": "-1"}),
        ):
            response = self.client.get(reverse(name), params)
            self.assertEqual(response.status_code, status.HTTP_200_OK, name)
            self.assertEqual(response.data, [], name)


class RosterUploadApiTests(PlacementApiTestCase):
    def test_upload_creates_applicants_and_log(self):
        upload = _roster_upload(
            [
                {"Roll Number": "1001", "Name": "Ann", "Email": "ann@example.com"},
                {"Roll Number": "1002", "Name": "Ben", "Email": None},
                {"Roll Number": "1001", "Name": "Ann Updated", "Email": None},
                {"Roll Number": None, "Name": "No Roll", "Email": None},
            ]
        )

        response = self.client.post(
            reverse("test-roster", args=[self.test.pk]), {"file": upload}, format="multipart"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["created"], 2)
        self.assertEqual(response.data["duplicates_removed"], 1)
        self.assertEqual(response.data["skipped"], 1)
        self.assertEqual(
            response.data["message"],
            "2 applicants uploaded/updated successfully (1 duplicates removed)",
        )
        self.assertEqual(
            sorted(Applicant.objects.filter(test=self.test).values_list("roll_number", "name")),
            [("1001", "Ann Updated"), ("1002", "Ben")],
        )
        log = RosterUpload.objects.get()
        self.assertEqual((log.file_name, log.uploaded_by, log.records_created), ("roster.xlsx", self.admin, 2))

    def test_reupload_updates_existing(self):
        Applicant.objects.create(test=self.test, roll_number="1001", name="Old")

        response = self.client.post(
            reverse("test-roster", args=[self.test.pk]),
            {"file": _roster_upload([{"roll_number": "1001", "name": "New"}])},
            format="multipart",
        )

        self.assertEqual(response.data["updated"], 1)
        self.assertEqual(Applicant.objects.get(roll_number="1001").name, "New")

    def test_missing_file_returns_400(self):
        response = self.client.post(reverse("test-roster", args=[self.test.pk]), {}, format="multipart")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "No file uploaded.")

    def test_file_without_valid_rows_returns_400(self):
        response = self.client.post(
            reverse("test-roster", args=[self.test.pk]),
            {"file": _roster_upload([{"Student": "X", "Full Name": "Y"}])},
            format="multipart",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["status"], "error")
        self.assertFalse(Applicant.objects.exists())
        self.assertFalse(RosterUpload.objects.exists())

    def test_garbage_file_returns_400(self):
        upload = SimpleUploadedFile("roster.xlsx", b"not excel", content_type=XLSX_CONTENT_TYPE)

        response = self.client.post(reverse("test-roster", args=[self.test.pk]), {"file": upload}, format="multipart")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_volunteer_cannot_upload(self):
        response = self.as_volunteer().post(
            reverse("test-roster", args=[self.test.pk]),
            {"file": _roster_upload([{"Roll Number": "1", "Name": "A"}])},
            format="multipart",
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_storage_failure_returns_502(self):
        with mock.patch("placement.api.views.import_roster", side_effect=StorageError("Could not write applicants.")):
            response = self.client.post(
                reverse("test-roster", args=[self.test.pk]),
                {"file": _roster_upload([{"Roll Number": "1", "Name": "A"}])},
                format="multipart",
            )

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data, {"status": "error", "message": "Could not write applicants."})

    def test_upload_history_listed(self):
        RosterUpload.objects.create(file_name="first.xlsx", test=self.test, records_created=3)

        response = self.client.get(reverse("test-roster-uploads", args=[self.test.pk]))

        self.assertEqual([u["file_name"] for u in response.data], ["first.xlsx"])


class SeatingApiTests(PlacementApiTestCase):
    def setUp(self):
        super().setUp()
        self.hall = Venue.objects.create(test=self.test, name="Hall", capacity=2)
        self.lab = Venue.objects.create(test=self.test, name="Lab", capacity=2)
        for number in range(1, 6):
            Applicant.objects.create(test=self.test, roll_number=f"R{number}", name=f"Applicant {number}")

    def test_generate_seating(self):
        response = self.client.post(reverse("test-seating", args=[self.test.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["seated"], 4)
        self.assertEqual(response.data["unseated"], 1)
        for venue in (self.hall, self.lab):
            seats = sorted(Applicant.objects.filter(venue=venue).values_list("seat_number", flat=True))
            self.assertEqual(seats, ["1", "2"])
        self.assertEqual(Applicant.objects.filter(venue__isnull=True, seat_number__isnull=True).count(), 1)

    def test_generate_with_export_returns_workbook(self):
        response = self.client.post(reverse("test-seating", args=[self.test.pk]) + "?export=1")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], XLSX_CONTENT_TYPE)
        frame = _read_xlsx(response)
        self.assertEqual(list(frame.columns), ["Roll Number", "Name", "Venue", "Seat"])
        self.assertEqual(len(frame.index), 4)
        self.assertEqual(list(frame["Venue"]), ["Hall", "Hall", "Lab", "Lab"])

    def test_seating_export_lists_only_seated(self):
        Applicant.objects.filter(roll_number="R1").update(venue=self.lab, seat_number="1")

        response = self.client.get(reverse("test-seating-export", args=[self.test.pk]))

        frame = _read_xlsx(response)
        self.assertEqual(list(frame["Roll Number"]), ["R1"])
        self.assertIn("Seating_Arrangement.xlsx", response["Content-Disposition"])

    def test_no_applicants_returns_404(self):
        Applicant.objects.all().delete()

        response = self.client.post(reverse("test-seating", args=[self.test.pk]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["status"], "error")

    def test_run_in_progress_returns_409(self):
        cache.add(f"placement-lock:seat-allocation:{self.test.pk}", "other", 60)

        response = self.client.post(reverse("test-seating", args=[self.test.pk]))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(Applicant.objects.filter(venue__isnull=False).exists())

    def test_volunteer_cannot_generate(self):
        response = self.as_volunteer().post(reverse("test-seating", args=[self.test.pk]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_applicants_filtered_by_seated(self):
        Applicant.objects.filter(roll_number="R2").update(venue=self.hall, seat_number="1")

        response = self.client.get(reverse("applicant-list"), {"test": self.test.pk, "seated": "1"})

        self.assertEqual([a["roll_number"] for a in response.data], ["R2"])
        self.assertEqual(response.data[0]["venue_name"], "Hall")


class AttendanceApiTests(PlacementApiTestCase):
    def setUp(self):
        super().setUp()
        venue = Venue.objects.create(test=self.test, name="Hall", capacity=10)
        self.applicant = Applicant.objects.create(
            test=self.test,
            roll_number="R100",
            name="Ann",
            email="ann@example.com",
            venue=venue,
            seat_number="7",
        )

    def mark(self, client, roll_number, **extra):
        return client.post(
            reverse("api-attendance-mark"),
            {"test": self.test.pk, "roll_number": roll_number, **extra},
            format="json",
        )

    def test_volunteer_marks_attendance(self):
        response = self.mark(self.as_volunteer(), "R100")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], "ok")
        self.assertEqual(response.data["attendance_status"], "present")
        self.assertEqual(response.data["venue"], "Hall")
        self.assertEqual(response.data["seat_number"], "7")
        record = AttendanceRecord.objects.get()
        self.assertEqual(record.marked_by, self.volunteer)
        self.assertEqual(record.status, "present")

    def test_second_mark_is_already_marked(self):
        self.mark(self.client, "R100")

        response = self.mark(self.client, "R100", source="scan")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "already_marked")
        self.assertEqual(AttendanceRecord.objects.count(), 1)

    def test_scanned_text_is_cleaned(self):
        response = self.mark(self.client, " R100\n", source="scan")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_unknown_roll_number_returns_404(self):
        response = self.mark(self.client, "NOPE")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn("Student not found", response.data["message"])

    def test_missing_input_returns_400(self):
        response = self.client.post(reverse("api-attendance-mark"), {"test": "", "roll_number": ""}, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["message"], "Please select a test and enter roll number")

    def test_attendance_export(self):
        self.mark(self.client, "R100")

        response = self.client.get(reverse("test-attendance-export", args=[self.test.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("Round_One_Attendance.xlsx", response["Content-Disposition"])
        frame = _read_xlsx(response)
        self.assertEqual(
            list(frame.columns),
            ["Roll Number", "Name", "Email", "Phone", "Status", "Marked At"],
        )
        self.assertEqual(frame.iloc[0]["Roll Number"], "R100")
        self.assertEqual(frame.iloc[0]["Status"], "present")

    def test_attendance_export_is_admin_only(self):
        response = self.as_volunteer().get(reverse("test-attendance-export", args=[self.test.pk]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_attendance_list_filtered_by_test(self):
        self.mark(self.client, "R100")

        response = self.as_volunteer().get(reverse("attendance-list"), {"test": self.test.pk})

        self.assertEqual([r["roll_number"] for r in response.data], ["R100"])


class DashboardAndHealthTests(PlacementApiTestCase):
    def test_dashboard_counts(self):
        applicant = Applicant.objects.create(test=self.test, roll_number="R1", name="Ann")
        AttendanceRecord.objects.create(applicant=applicant, test=self.test)

        response = self.as_volunteer().get(reverse("api-dashboard"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            response.data,
            {
                "campaigns": 1,
                "tests": 1,
                "upcoming_tests": 1,
                "applicants": 1,
                "attendance_today": 1,
            },
        )

    def test_healthz_reports_database(self):
        for name in ("healthz", "api-healthz"):
            response = APIClient().get(reverse(name))
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json()["services"]["database"]["status"], "ok")
