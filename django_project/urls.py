from django.conf import settings
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("accounts/", include("allauth.urls")),
    path("api/", include("placement.api.urls")),
    path("", include("placement.urls")),
]

if getattr(settings, "ENABLE_DEBUG_TOOLBAR", False):
    urlpatterns = [path("__debug__/", include("debug_toolbar.urls"))] + urlpatterns
