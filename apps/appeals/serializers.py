from rest_framework import serializers

from .models import (
    Appeal,
    AppealComment,
    AppealActivity,
    AppealCategory,
    AppealStatus,
    AssigneeRole,
)
from .services import LIST_STATUSES, allowed_next_statuses, is_overdue, is_due_soon, list_comments


# =============================================================================
# Input Serializers
# =============================================================================

class AppealCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    body = serializers.CharField()
    plot_id = serializers.UUIDField(required=False, allow_null=True)
    plot_number = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    author_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    author_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')


class AppealFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[(s, s) for s in LIST_STATUSES], required=False)
    q = serializers.CharField(required=False, allow_blank=True, default='')
    assigned_to = serializers.CharField(required=False, allow_blank=True)
    category = serializers.ChoiceField(choices=AppealCategory.choices, required=False)


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AppealStatus.choices)
    comment = serializers.CharField(required=False, allow_blank=True, default='')


class CommentCreateSerializer(serializers.Serializer):
    body = serializers.CharField()
    is_internal = serializers.BooleanField(required=False, default=False)


class AssignSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=AssigneeRole.choices, required=False)
    assigned_to = serializers.UUIDField(required=False, allow_null=True)
    due_at = serializers.DateTimeField(required=False)


class CategoryChangeSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=AppealCategory.choices)


# =============================================================================
# Output Serializers
# =============================================================================

class AppealListSerializer(serializers.ModelSerializer):
    """Inbox row."""

    assigned_to_name = serializers.CharField(source='assigned_to.get_display_name', read_only=True, default=None)
    is_overdue = serializers.SerializerMethodField()
    is_due_soon = serializers.SerializerMethodField()

    class Meta:
        model = Appeal
        fields = [
            'id',
            'title',
            'category',
            'priority',
            'status',
            'plot_number',
            'author_name',
            'assigned_role',
            'assigned_to',
            'assigned_to_name',
            'due_at',
            'due_at_source',
            'is_overdue',
            'is_due_soon',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_is_overdue(self, obj) -> bool:
        return is_overdue(obj.due_at, obj.status)

    def get_is_due_soon(self, obj) -> bool:
        return is_due_soon(obj.due_at, obj.status)


class AppealCommentSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source='author.get_display_name', read_only=True, default=None)

    class Meta:
        model = AppealComment
        fields = ['id', 'author', 'author_name', 'author_role', 'body', 'is_internal', 'created_at']
        read_only_fields = fields


class AppealActivitySerializer(serializers.ModelSerializer):
    actor_email = serializers.EmailField(source='actor.email', read_only=True, default=None)

    class Meta:
        model = AppealActivity
        fields = ['id', 'kind', 'actor', 'actor_email', 'payload', 'created_at']
        read_only_fields = fields


class AppealDetailSerializer(AppealListSerializer):
    """Full appeal with the comments the caller may see."""

    plot_label = serializers.CharField(source='plot.label', read_only=True, default=None)
    comments = serializers.SerializerMethodField()
    allowed_statuses = serializers.SerializerMethodField()

    class Meta(AppealListSerializer.Meta):
        fields = AppealListSerializer.Meta.fields + [
            'body',
            'author_phone',
            'plot',
            'plot_label',
            'assigned_at',
            'closed_at',
            'comments',
            'allowed_statuses',
        ]
        read_only_fields = fields

    def get_comments(self, obj):
        request = self.context.get('request')
        comments = list_comments(appeal=obj, user=request.user) if request else obj.comments.filter(is_internal=False)
        return AppealCommentSerializer(comments, many=True).data

    def get_allowed_statuses(self, obj):
        return [str(status) for status in allowed_next_statuses(obj.status)]


class InboxStatsSerializer(serializers.Serializer):
    total_open = serializers.IntegerField()
    my_open = serializers.IntegerField()
    overdue = serializers.IntegerField()
    due_soon = serializers.IntegerField()


class RemindOverdueResultSerializer(serializers.Serializer):
    overdue_count = serializers.IntegerField()
    appeal_ids = serializers.ListField(child=serializers.UUIDField())
