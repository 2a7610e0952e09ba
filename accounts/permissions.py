from rest_framework import permissions


def is_placement_admin(user) -> bool:
    if not user or not getattr(user, "is_authenticated", False):
        return False
    return bool(getattr(user, "is_placement_admin", False) or user.is_staff or user.is_superuser)


class IsPlacementAdmin(permissions.BasePermission):
    """
    Allow access only to console admins (role=admin, staff or superusers).
    """

    def has_permission(self, request, view):
        return is_placement_admin(getattr(request, "user", None))


class IsAdminOrReadOnly(permissions.BasePermission):
    """
    Volunteers may read; only admins may write.
    """

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return is_placement_admin(user)
