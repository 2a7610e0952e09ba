import logging

from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdminOrReadOnly, IsPlacementAdmin
from placement.exceptions import (
    AllocationInProgressError,
    AlreadyMarkedError,
    NotFoundError,
    PlacementError,
    StorageError,
    ValidationError,
)
from placement.gateway import DjangoGateway
from placement.models import Applicant, AttendanceRecord, Campaign, Cycle, RosterUpload, Test, Venue
from placement.services import (
    allocate_seats,
    attendance_export_rows,
    import_roster,
    mark_attendance,
    seating_export_rows,
)
from placement.services.exports import ATTENDANCE_COLUMNS, SEATING_COLUMNS, export_filename, workbook_response
from placement.services.stats import dashboard_counts
from .serializers import (
    ApplicantSerializer,
    AttendanceMarkSerializer,
    AttendanceRecordSerializer,
    CampaignSerializer,
    CycleSerializer,
    RosterUploadSerializer,
    TestSerializer,
    VenueSerializer,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AllocationInProgressError, status.HTTP_409_CONFLICT),
    (StorageError, status.HTTP_502_BAD_GATEWAY),
)


def placement_error_response(exc: PlacementError) -> Response:
    """Translate a procedure error into the console's JSON error shape."""
    if isinstance(exc, AlreadyMarkedError):
        return Response(
            {"status": "already_marked", "message": exc.message},
            status=status.HTTP_200_OK,
        )
    for error_class, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            break
    else:
        code = status.HTTP_400_BAD_REQUEST
    if code >= 500:
        logger.warning("Placement storage failure: %s", exc.message)
    return Response({"status": "error", "message": exc.message}, status=code)


def _is_truthy(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def _gateway_for(request) -> DjangoGateway:
    return DjangoGateway(user=getattr(request, "user", None))


def _filter_by_id(qs, params, param, field):
    """Apply an optional numeric id query parameter; anything else matches nothing."""
    value = (params.get(param) or "").strip()
    if not value:
        return qs
    if not value.isdigit():
        return qs.none()
    return qs.filter(**{field: int(value)})


class DashboardView(APIView):
    """Headline counts for the console landing page."""

    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        return Response(dashboard_counts())


class CampaignViewSet(viewsets.ModelViewSet):
    queryset = Campaign.objects.all()
    serializer_class = CampaignSerializer
    permission_classes = [IsAdminOrReadOnly]

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    @action(detail=True, methods=["get"])
    def cycles(self, request, pk=None):
        campaign = self.get_object()
        return Response(CycleSerializer(campaign.cycles.all(), many=True).data)

    @action(detail=True, methods=["get"])
    def tests(self, request, pk=None):
        campaign = self.get_object()
        qs = campaign.tests.select_related("campaign", "cycle")
        return Response(TestSerializer(qs, many=True).data)


class CycleViewSet(viewsets.ModelViewSet):
    queryset = Cycle.objects.select_related("campaign")
    serializer_class = CycleSerializer
    permission_classes = [IsPlacementAdmin]

    def get_queryset(self):
        qs = super().get_queryset()
        qs = _filter_by_id(qs, self.request.query_params, "campaign", "campaign_id")
        return qs


class TestViewSet(viewsets.ModelViewSet):
    """
    Tests of a campaign plus the per-test procedures: roster upload, seating
    generation and the seating / attendance spreadsheet exports.
    """

    queryset = Test.objects.select_related("campaign", "cycle")
    serializer_class = TestSerializer
    permission_classes = [IsAdminOrReadOnly]

    def get_queryset(self):
        qs = super().get_queryset()
        qs = _filter_by_id(qs, self.request.query_params, "campaign", "campaign_id")
        qs = _filter_by_id(qs, self.request.query_params, "cycle", "cycle_id")
        if _is_truthy(self.request.query_params.get("upcoming")):
            qs = qs.filter(test_date__gte=timezone.localdate())
        return qs

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    @action(
        detail=True,
        methods=["post"],
        url_path="roster",
        permission_classes=[IsPlacementAdmin],
        parser_classes=[MultiPartParser, FormParser],
        throttle_classes=[],
    )
    def roster(self, request, pk=None):
        test = self.get_object()
        upload = request.FILES.get("file")
        if not upload:
            return Response(
                {"status": "error", "message": "No file uploaded."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            summary = import_roster(
                _gateway_for(request),
                test.pk,
                upload,
                file_name=getattr(upload, "name", "uploaded_file"),
            )
        except PlacementError as exc:
            return placement_error_response(exc)

        return Response({"status": "ok", **summary}, status=status.HTTP_200_OK)

    @action(
        detail=True,
        methods=["get"],
        url_path="roster-uploads",
        permission_classes=[IsPlacementAdmin],
    )
    def roster_uploads(self, request, pk=None):
        test = self.get_object()
        qs = RosterUpload.objects.filter(test=test)
        return Response(RosterUploadSerializer(qs, many=True).data)

    @action(
        detail=True,
        methods=["post"],
        url_path="seating",
        permission_classes=[IsPlacementAdmin],
        parser_classes=[JSONParser, FormParser],
        throttle_classes=[],
    )
    def seating(self, request, pk=None):
        test = self.get_object()
        gateway = _gateway_for(request)
        try:
            summary = allocate_seats(gateway, test.pk)
        except PlacementError as exc:
            return placement_error_response(exc)

        if _is_truthy(request.query_params.get("export")):
            return workbook_response(
                seating_export_rows(gateway, test.pk),
                "Seating",
                SEATING_COLUMNS,
                "Seating_Arrangement.xlsx",
            )
        return Response(
            {"status": "ok", "message": "Seating arrangement generated!", **summary},
            status=status.HTTP_200_OK,
        )

    @action(
        detail=True,
        methods=["get"],
        url_path="seating/export",
        permission_classes=[IsPlacementAdmin],
    )
    def seating_export(self, request, pk=None):
        test = self.get_object()
        rows = seating_export_rows(_gateway_for(request), test.pk)
        return workbook_response(rows, "Seating", SEATING_COLUMNS, "Seating_Arrangement.xlsx")

    @action(
        detail=True,
        methods=["get"],
        url_path="attendance/export",
        permission_classes=[IsPlacementAdmin],
    )
    def attendance_export(self, request, pk=None):
        test = self.get_object()
        rows = attendance_export_rows(_gateway_for(request), test.pk)
        filename = export_filename(test.name, "Attendance")
        return workbook_response(rows, "Attendance", ATTENDANCE_COLUMNS, filename)


class VenueViewSet(viewsets.ModelViewSet):
    queryset = Venue.objects.select_related("test")
    serializer_class = VenueSerializer
    permission_classes = [IsPlacementAdmin]

    def get_queryset(self):
        qs = super().get_queryset()
        qs = _filter_by_id(qs, self.request.query_params, "test", "test_id")
        return qs


class ApplicantViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Applicant.objects.select_related("venue")
    serializer_class = ApplicantSerializer
    permission_classes = [IsPlacementAdmin]

    def get_queryset(self):
        qs = super().get_queryset()
        qs = _filter_by_id(qs, self.request.query_params, "test", "test_id")
        seated = self.request.query_params.get("seated")
        if seated is not None:
            qs = qs.filter(venue__isnull=not _is_truthy(seated))
        return qs


class AttendanceRecordViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AttendanceRecord.objects.select_related("applicant")
    serializer_class = AttendanceRecordSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        qs = super().get_queryset()
        qs = _filter_by_id(qs, self.request.query_params, "test", "test_id")
        return qs


class AttendanceMarkView(APIView):
    """
    Mark an applicant present by roll number, typed by an operator or decoded
    from a scanned barcode (``source="scan"``).
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = AttendanceMarkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        test_id = (data.get("test") or "").strip()
        if test_id and not test_id.isdigit():
            return placement_error_response(NotFoundError("Test not found."))

        try:
            record = mark_attendance(
                _gateway_for(request),
                int(test_id) if test_id else None,
                data.get("roll_number"),
            )
        except PlacementError as exc:
            return placement_error_response(exc)

        logger.debug("Attendance marked via %s by user_id=%s", data.get("source"), request.user.pk)
        return Response({"status": "ok", **record}, status=status.HTTP_201_CREATED)
