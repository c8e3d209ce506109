from rest_framework import status, generics, serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.exceptions import TokenError
from drf_spectacular.utils import extend_schema

from apps.audit.services import request_id_from

from . import rbac
from .models import User
from .permissions import IsPortalAdmin
from .serializers import (
    UserRegistrationSerializer,
    UserLoginSerializer,
    UserSerializer,
    ProfileUpdateSerializer,
    RoleChangeSerializer,
    UserAdminSerializer,
    CapabilitiesSerializer,
)
from .services import (
    register_user,
    authenticate_user,
    update_profile as update_profile_service,
    change_user_role,
    UserRegistrationError,
    InvalidCredentialsError,
    InactiveAccountError,
    UserNotFoundError,
    RoleChangeError,
)


# Response serializers for API documentation
class TokensResponseSerializer(serializers.Serializer):
    refresh = serializers.CharField()
    access = serializers.CharField()


class AuthResponseSerializer(serializers.Serializer):
    message = serializers.CharField()
    user = UserSerializer()
    tokens = TokensResponseSerializer()
    default_path = serializers.CharField()


class MessageResponseSerializer(serializers.Serializer):
    message = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


class LogoutRequestSerializer(serializers.Serializer):
    refresh = serializers.CharField(help_text="Refresh token of the session")


def _auth_response(user, message, http_status=status.HTTP_200_OK):
    refresh = RefreshToken.for_user(user)
    return Response({
        'message': message,
        'user': UserSerializer(user).data,
        'tokens': {
            'refresh': str(refresh),
            'access': str(refresh.access_token),
        },
        'default_path': rbac.default_path_for_role(user.role),
    }, status=http_status)


@extend_schema(
    request=UserRegistrationSerializer,
    responses={
        201: AuthResponseSerializer,
        400: ErrorResponseSerializer,
    },
    description="Register a resident account with an invite code and receive JWT tokens.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Register a resident account."""
    serializer = UserRegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    data = serializer.validated_data.copy()
    data.pop('password_confirm', None)

    try:
        user = register_user(**data)
    except UserRegistrationError as e:
        return Response(
            {'error': str(e)},
            status=status.HTTP_400_BAD_REQUEST
        )

    return _auth_response(user, 'Регистрация завершена', status.HTTP_201_CREATED)


@extend_schema(
    request=UserLoginSerializer,
    responses={
        200: AuthResponseSerializer,
        400: ErrorResponseSerializer,
        401: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
    },
    description="Authenticate with email and password to receive JWT tokens.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Login with email and password."""
    serializer = UserLoginSerializer(data=request.data)

    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        user = authenticate_user(**serializer.validated_data)
    except InvalidCredentialsError as e:
        return Response({'error': str(e)}, status=status.HTTP_401_UNAUTHORIZED)
    except InactiveAccountError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

    return _auth_response(user, 'Вход выполнен')


@extend_schema(
    request=LogoutRequestSerializer,
    responses={
        200: MessageResponseSerializer,
        400: ErrorResponseSerializer,
    },
    description="Logout. The refresh token is checked so clients notice a broken session.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Logout and drop the refresh token on the client."""
    refresh_token = request.data.get('refresh')
    if refresh_token:
        try:
            RefreshToken(refresh_token)
        except TokenError:
            return Response({
                'error': 'Invalid token'
            }, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': 'Выход выполнен'
    })


@extend_schema(
    responses={200: UserSerializer},
    description="Get the current authenticated user's profile.",
    tags=['auth'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_current_user(request):
    """Get current authenticated user profile."""
    return Response(UserSerializer(request.user).data)


@extend_schema(
    request=ProfileUpdateSerializer,
    responses={
        200: UserSerializer,
        400: ErrorResponseSerializer,
    },
    description="Update the current user's profile (full_name, phone).",
    tags=['auth'],
)
@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def update_profile(request):
    """Update user profile."""
    serializer = ProfileUpdateSerializer(data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)

    user = update_profile_service(user=request.user, **serializer.validated_data)
    return Response(UserSerializer(user).data)


@extend_schema(
    responses={200: CapabilitiesSerializer},
    description="Role, capabilities and landing page of the caller. Works for anonymous visitors.",
    tags=['auth'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def my_capabilities(request):
    """RBAC view of the current user."""
    role = rbac.role_of(request.user)
    return Response(CapabilitiesSerializer.for_role(role))


class UserPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class UserListView(generics.ListAPIView):
    """
    All portal accounts (administrator only).

    GET /api/auth/users/?role=
    """
    serializer_class = UserAdminSerializer
    permission_classes = [IsAuthenticated, IsPortalAdmin]
    pagination_class = UserPagination

    def get_queryset(self):
        queryset = User.objects.order_by('email')
        role = self.request.query_params.get('role')
        if role:
            queryset = queryset.filter(role=role)
        return queryset


@extend_schema(
    request=RoleChangeSerializer,
    responses={
        200: UserAdminSerializer,
        400: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
    },
    description="Change a user's role (administrator only).",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPortalAdmin])
def change_role(request, pk):
    """Assign a role to a user."""
    serializer = RoleChangeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        user = change_user_role(
            user_id=pk,
            role=serializer.validated_data['role'],
            changed_by=request.user,
            request_id=request_id_from(request),
        )
    except UserNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except RoleChangeError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(UserAdminSerializer(user).data)
