"""
Account registration.
"""
from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from apps.authz.serializers import RegisterSerializer, RegisteredUserSerializer
from apps.authz.services import RegistrationClosedError, register_user


def get_client_ip(request):
    """Extract client IP address from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


class RegisterView(APIView):
    """
    POST /api/auth/register/

    Creates an account and returns it with a JWT pair. The first account
    on the instance becomes instance admin. A family is not created here;
    the default family is bootstrapped on the first child creation.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'auth_register'

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user = register_user(
                email=serializer.validated_data['email'],
                password=serializer.validated_data['password'],
                username=serializer.validated_data.get('username'),
                ip_address=get_client_ip(request),
            )
        except RegistrationClosedError as exc:
            raise PermissionDenied(str(exc))

        refresh = RefreshToken.for_user(user)
        response_data = RegisteredUserSerializer(user).data
        response_data['tokens'] = {
            'access': str(refresh.access_token),
            'refresh': str(refresh),
        }
        return Response(response_data, status=status.HTTP_201_CREATED)
