from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password

from . import rbac
from .models import User, Role


class UserSerializer(serializers.ModelSerializer):
    """Profile of the current user."""

    plots = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'full_name',
            'phone',
            'role',
            'plots',
            'created_at',
            'last_login',
        ]
        read_only_fields = ['id', 'email', 'role', 'created_at', 'last_login']

    def get_plots(self, obj):
        person = getattr(obj, 'person', None)
        if person is None:
            return []
        return [
            {'id': ownership.plot_id, 'label': ownership.plot.label}
            for ownership in person.ownerships.select_related('plot')
        ]


class UserRegistrationSerializer(serializers.Serializer):
    """Resident sign-up with a board-issued invite code."""

    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    password_confirm = serializers.CharField(
        write_only=True,
        style={'input_type': 'password'}
    )
    invite_code = serializers.CharField(max_length=16)
    full_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        """Validate password confirmation."""
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({
                'password_confirm': 'Пароли не совпадают'
            })
        return attrs


class UserLoginSerializer(serializers.Serializer):
    """Serializer for user login."""

    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )


class ProfileUpdateSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)


class RoleChangeSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices)


class UserAdminSerializer(serializers.ModelSerializer):
    """User row in the administration list."""

    class Meta:
        model = User
        fields = ['id', 'email', 'full_name', 'phone', 'role', 'is_active', 'created_at', 'last_login']
        read_only_fields = fields


class CapabilitiesSerializer(serializers.Serializer):
    role = serializers.CharField()
    capabilities = serializers.ListField(child=serializers.CharField())
    default_path = serializers.CharField()

    @staticmethod
    def for_role(role):
        return {
            'role': role,
            'capabilities': sorted(rbac.get_capabilities(role)),
            'default_path': rbac.default_path_for_role(role),
        }
