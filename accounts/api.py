import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db.models import Q
from django.utils import timezone
from rest_framework import serializers, status, viewsets
from rest_framework.authtoken.views import ObtainAuthToken
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from accounts.models import Role, UserSession
from accounts.permissions import IsPlacementAdmin, is_placement_admin

logger = logging.getLogger(__name__)


def _derive_role(user):
    if is_placement_admin(user):
        return Role.ADMIN.value
    return Role.VOLUNTEER.value


def _get_client_ip(request):
    xff = request.META.get("HTTP_X_FORWARDED_FOR")
    if xff:
        return xff.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "")


def _get_user_agent(request):
    return request.META.get("HTTP_USER_AGENT", "")


def _user_payload(user):
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "full_name": getattr(user, "full_name", "") or "",
        "phone": getattr(user, "phone", None),
        "is_staff": user.is_staff,
        "is_superuser": user.is_superuser,
        "role": _derive_role(user),
        "last_login": user.last_login.isoformat() if user.last_login else None,
    }


class AuthTokenSerializer(serializers.Serializer):
    username = serializers.CharField(write_only=True)
    password = serializers.CharField(write_only=True, style={"input_type": "password"})

    default_error_messages = {
        "invalid_credentials": "Unable to log in with provided credentials.",
        "inactive": "User account is disabled.",
    }

    def validate(self, attrs):
        username_or_email = attrs.get("username")
        password = attrs.get("password")
        if not username_or_email or not password:
            raise serializers.ValidationError(self.error_messages["invalid_credentials"], code="authorization")

        user_model = get_user_model()
        user = (
            user_model.objects.filter(Q(username=username_or_email) | Q(email__iexact=username_or_email))
            .order_by("id")
            .first()
        )
        if not user or not user.check_password(password):
            raise serializers.ValidationError(self.error_messages["invalid_credentials"], code="authorization")
        if not user.is_active:
            raise serializers.ValidationError(self.error_messages["inactive"], code="authorization")

        attrs["user"] = user
        return attrs


class ObtainAuthTokenView(ObtainAuthToken):
    """
    Issue a per-login session token for any active console user.
    Accepts either username or email in the "username" field.
    """

    permission_classes = [AllowAny]
    serializer_class = AuthTokenSerializer
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "login"

    def post(self, request, *args, **kwargs):
        serializer = self.serializer_class(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]
        # Manually bump last_login since we are not using django.contrib.auth.login here.
        user.last_login = timezone.now()
        user.save(update_fields=["last_login"])
        session = UserSession.objects.create(
            user=user,
            user_agent=_get_user_agent(request),
            ip_address=_get_client_ip(request),
        )
        logger.info("Issued API session for user_id=%s", user.pk)
        return Response(
            {
                "token": session.key,
                "user": _user_payload(user),
            },
            status=status.HTTP_200_OK,
        )


class CurrentUserView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, *_args, **_kwargs):
        return Response(_user_payload(request.user), status=status.HTTP_200_OK)

    def patch(self, request, *_args, **_kwargs):
        user = request.user
        user_model = get_user_model()

        email = request.data.get("email")
        full_name = request.data.get("full_name")
        phone = request.data.get("phone")
        current_password = request.data.get("current_password")
        new_password = request.data.get("new_password")
        confirm_password = request.data.get("confirm_password")

        update_fields = []
        if email is not None:
            email = email.strip()
            if email and user_model.objects.exclude(pk=user.pk).filter(email__iexact=email).exists():
                return Response({"detail": "Email is already in use."}, status=status.HTTP_400_BAD_REQUEST)
            if email != user.email:
                user.email = email
                update_fields.append("email")

        if full_name is not None and full_name.strip() != user.full_name:
            user.full_name = full_name.strip()
            update_fields.append("full_name")

        if phone is not None and phone.strip() != (user.phone or ""):
            user.phone = phone.strip()
            update_fields.append("phone")

        password_updated = False
        if current_password or new_password or confirm_password:
            if not current_password or not new_password:
                return Response({"detail": "Current password and new password are required."}, status=status.HTTP_400_BAD_REQUEST)
            if new_password != confirm_password:
                return Response({"detail": "New passwords do not match."}, status=status.HTTP_400_BAD_REQUEST)
            if not user.check_password(current_password):
                return Response({"detail": "Current password is incorrect."}, status=status.HTTP_400_BAD_REQUEST)
            try:
                validate_password(new_password, user)
            except ValidationError as exc:
                return Response({"detail": exc.messages}, status=status.HTTP_400_BAD_REQUEST)
            user.set_password(new_password)
            update_fields.append("password")
            password_updated = True

        if update_fields:
            user.save(update_fields=update_fields)

        payload = _user_payload(user)
        payload["password_updated"] = password_updated
        return Response(payload, status=status.HTTP_200_OK)


class SessionLogoutView(APIView):
    """
    Revoke the current session (used on logout).
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, *_args, **_kwargs):
        current_session = getattr(request, "auth", None)
        if isinstance(current_session, UserSession):
            current_session.revoke()
            return Response({"detail": "Session revoked."}, status=status.HTTP_200_OK)
        return Response({"detail": "No active session to revoke."}, status=status.HTTP_400_BAD_REQUEST)


class UserSerializer(serializers.ModelSerializer):
    role = serializers.SerializerMethodField()

    class Meta:
        model = get_user_model()
        fields = ("id", "username", "email", "full_name", "phone", "role", "is_active")
        read_only_fields = fields

    def get_role(self, obj):
        return _derive_role(obj)


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Admin listing of console users with their roles.
    """

    queryset = get_user_model().objects.order_by("full_name", "username")
    serializer_class = UserSerializer
    permission_classes = [IsPlacementAdmin]

    @action(detail=True, methods=["post"], url_path="set-role")
    def set_role(self, request, pk=None):
        user = self.get_object()
        role = request.data.get("role")
        if role not in Role.values:
            return Response(
                {"detail": f"Role must be one of: {', '.join(Role.values)}."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if user.pk == request.user.pk and role != Role.ADMIN:
            return Response(
                {"detail": "You cannot remove your own admin role."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        user.role = role
        user.save(update_fields=["role"])
        logger.info("User %s set role of user_id=%s to %s", request.user.pk, user.pk, role)
        return Response(self.get_serializer(user).data, status=status.HTTP_200_OK)
