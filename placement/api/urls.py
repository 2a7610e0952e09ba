from django.urls import path
from rest_framework.routers import DefaultRouter

from placement.views import healthz_view

from accounts.api import (
    CurrentUserView,
    ObtainAuthTokenView,
    SessionLogoutView,
    UserViewSet,
)
from .views import (
    ApplicantViewSet,
    AttendanceMarkView,
    AttendanceRecordViewSet,
    CampaignViewSet,
    CycleViewSet,
    DashboardView,
    TestViewSet,
    VenueViewSet,
)

router = DefaultRouter()
router.register("users", UserViewSet, basename="user")
router.register("campaigns", CampaignViewSet, basename="campaign")
router.register("cycles", CycleViewSet, basename="cycle")
router.register("tests", TestViewSet, basename="test")
router.register("venues", VenueViewSet, basename="venue")
router.register("applicants", ApplicantViewSet, basename="applicant")
router.register("attendance", AttendanceRecordViewSet, basename="attendance")

urlpatterns = [
    path("auth/token/login/", ObtainAuthTokenView.as_view(), name="api-login"),
    path("auth/me/", CurrentUserView.as_view(), name="api-auth-me"),
    path("auth/logout/", SessionLogoutView.as_view(), name="api-auth-logout"),
    path("dashboard/", DashboardView.as_view(), name="api-dashboard"),
    path("attendance/mark/", AttendanceMarkView.as_view(), name="api-attendance-mark"),
    path("healthz/", healthz_view, name="api-healthz"),
]

urlpatterns += router.urls
