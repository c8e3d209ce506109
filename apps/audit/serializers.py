from rest_framework import serializers

from .models import AuditLog, AuditAction


# =============================================================================
# Input Serializers
# =============================================================================

class AuditFilterSerializer(serializers.Serializer):
    """Validate audit log query parameters."""

    action = serializers.ChoiceField(choices=AuditAction.choices, required=False)
    actor = serializers.UUIDField(required=False)
    target_type = serializers.CharField(required=False, max_length=50)
    target_id = serializers.CharField(required=False, max_length=64)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        date_from = attrs.get('date_from')
        date_to = attrs.get('date_to')
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({
                'date_to': 'date_to must be after date_from'
            })
        return attrs


# =============================================================================
# Output Serializers
# =============================================================================

class AuditLogSerializer(serializers.ModelSerializer):
    actor_email = serializers.EmailField(source='actor.email', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = [
            'id',
            'actor',
            'actor_email',
            'actor_role',
            'action',
            'target_type',
            'target_id',
            'target_ids',
            'details',
            'request_id',
            'created_at',
        ]
        read_only_fields = fields
