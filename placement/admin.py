from django.contrib import admin

from .models import (
    Applicant,
    AttendanceRecord,
    Campaign,
    Cycle,
    RosterUpload,
    Test,
    Venue,
)


class CycleInline(admin.TabularInline):
    model = Cycle
    extra = 0
    fields = ("cycle_number", "name", "start_date", "end_date")


class VenueInline(admin.TabularInline):
    model = Venue
    extra = 0
    fields = ("name", "capacity")


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ("name", "start_date", "end_date", "created_by", "created_at")
    search_fields = ("name", "description")
    date_hierarchy = "start_date"
    inlines = [CycleInline]


@admin.register(Cycle)
class CycleAdmin(admin.ModelAdmin):
    list_display = ("name", "campaign", "cycle_number", "start_date", "end_date")
    list_filter = ("campaign",)
    ordering = ("campaign", "cycle_number")


@admin.register(Test)
class TestAdmin(admin.ModelAdmin):
    list_display = ("name", "campaign", "cycle", "test_date", "test_time", "duration_minutes")
    search_fields = ("name", "campaign__name")
    list_filter = ("campaign", "test_date")
    inlines = [VenueInline]


@admin.register(Venue)
class VenueAdmin(admin.ModelAdmin):
    list_display = ("name", "test", "capacity")
    search_fields = ("name", "test__name")
    list_filter = ("test",)


@admin.register(Applicant)
class ApplicantAdmin(admin.ModelAdmin):
    list_display = ("roll_number", "name", "test", "venue", "seat_number")
    search_fields = ("roll_number", "name", "email", "phone")
    list_filter = ("test",)
    autocomplete_fields = ("venue",)


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ("applicant", "test", "status", "marked_at", "marked_by")
    list_filter = ("status", "test")
    search_fields = ("applicant__roll_number", "applicant__name")
    date_hierarchy = "marked_at"


@admin.register(RosterUpload)
class RosterUploadAdmin(admin.ModelAdmin):
    list_display = (
        "file_name",
        "test",
        "uploaded_by",
        "uploaded_at",
        "records_created",
        "records_updated",
        "duplicates_removed",
        "rows_skipped",
    )
    list_filter = ("test",)
    readonly_fields = ("uploaded_at",)
