from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from placement.models import (
    Applicant,
    AttendanceRecord,
    Campaign,
    Cycle,
    RosterUpload,
    Test,
    Venue,
)


class ModelCleanMixin:
    """Run the model's clean() so cross-field rules apply to API writes too."""

    def validate(self, attrs):
        attrs = super().validate(attrs)
        model = self.Meta.model
        values = {}
        if self.instance is not None:
            values = {f.name: getattr(self.instance, f.name) for f in model._meta.concrete_fields}
        values.update(attrs)
        try:
            model(**values).clean()
        except DjangoValidationError as exc:
            raise serializers.ValidationError(
                exc.message_dict if hasattr(exc, "error_dict") else exc.messages
            )
        return attrs


class CampaignSerializer(ModelCleanMixin, serializers.ModelSerializer):
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)
    cycles_count = serializers.SerializerMethodField()
    tests_count = serializers.SerializerMethodField()

    class Meta:
        model = Campaign
        fields = (
            "id",
            "name",
            "description",
            "start_date",
            "end_date",
            "created_by",
            "created_at",
            "updated_at",
            "cycles_count",
            "tests_count",
        )
        read_only_fields = ("id", "created_at", "updated_at")

    def get_cycles_count(self, obj):
        return obj.cycles.count()

    def get_tests_count(self, obj):
        return obj.tests.count()


class CycleSerializer(ModelCleanMixin, serializers.ModelSerializer):
    class Meta:
        model = Cycle
        fields = (
            "id",
            "campaign",
            "name",
            "cycle_number",
            "start_date",
            "end_date",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "created_at", "updated_at")


class TestSerializer(ModelCleanMixin, serializers.ModelSerializer):
    created_by = serializers.PrimaryKeyRelatedField(read_only=True)
    campaign_name = serializers.CharField(source="campaign.name", read_only=True)
    cycle_name = serializers.CharField(source="cycle.name", read_only=True)
    applicants_count = serializers.SerializerMethodField()
    venues_count = serializers.SerializerMethodField()

    class Meta:
        model = Test
        fields = (
            "id",
            "campaign",
            "campaign_name",
            "cycle",
            "cycle_name",
            "name",
            "test_date",
            "test_time",
            "duration_minutes",
            "created_by",
            "created_at",
            "updated_at",
            "applicants_count",
            "venues_count",
        )
        read_only_fields = ("id", "created_at", "updated_at")

    def get_applicants_count(self, obj):
        return obj.applicants.count()

    def get_venues_count(self, obj):
        return obj.venues.count()


class VenueSerializer(serializers.ModelSerializer):
    capacity = serializers.IntegerField(min_value=1)
    seated = serializers.SerializerMethodField()

    class Meta:
        model = Venue
        fields = ("id", "test", "name", "capacity", "created_at", "seated")
        read_only_fields = ("id", "created_at")

    def get_seated(self, obj):
        return obj.applicants.count()


class ApplicantSerializer(serializers.ModelSerializer):
    venue_name = serializers.CharField(source="venue.name", read_only=True, default=None)
    attended = serializers.SerializerMethodField()

    class Meta:
        model = Applicant
        fields = (
            "id",
            "test",
            "roll_number",
            "name",
            "email",
            "phone",
            "venue",
            "venue_name",
            "seat_number",
            "attended",
            "created_at",
        )
        read_only_fields = fields

    def get_attended(self, obj):
        return obj.attendance.filter(test_id=obj.test_id).exists()


class AttendanceRecordSerializer(serializers.ModelSerializer):
    roll_number = serializers.CharField(source="applicant.roll_number", read_only=True)
    name = serializers.CharField(source="applicant.name", read_only=True)

    class Meta:
        model = AttendanceRecord
        fields = ("id", "applicant", "test", "roll_number", "name", "status", "marked_at", "marked_by")
        read_only_fields = fields


class AttendanceMarkSerializer(serializers.Serializer):
    test = serializers.CharField(allow_blank=True, required=False, default="")
    roll_number = serializers.CharField(allow_blank=True, required=False, default="", trim_whitespace=False)
    source = serializers.ChoiceField(choices=("manual", "scan"), required=False, default="manual")


class RosterUploadSerializer(serializers.ModelSerializer):
    class Meta:
        model = RosterUpload
        fields = (
            "id",
            "file_name",
            "test",
            "uploaded_by",
            "uploaded_at",
            "records_created",
            "records_updated",
            "duplicates_removed",
            "rows_skipped",
        )
        read_only_fields = fields
