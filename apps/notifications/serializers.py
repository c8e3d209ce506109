from rest_framework import serializers

from .models import Announcement, NotificationDraft, Audience, AnnouncementStatus, Channel, DraftStatus
from .services import list_templates


# =============================================================================
# Input serializers
# =============================================================================

class AnnouncementInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    body = serializers.CharField()
    audience = serializers.ChoiceField(choices=Audience.choices, default=Audience.ALL)
    publish = serializers.BooleanField(default=False)


class AnnouncementUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False)
    body = serializers.CharField(required=False)
    audience = serializers.ChoiceField(choices=Audience.choices, required=False)


class AnnouncementFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AnnouncementStatus.choices, required=False)
    q = serializers.CharField(required=False, allow_blank=True, default='')


class TemplatePreviewSerializer(serializers.Serializer):
    template_id = serializers.ChoiceField(choices=[t['id'] for t in list_templates()])
    values = serializers.DictField(child=serializers.CharField(allow_blank=True), default=dict)


class DraftGenerateSerializer(serializers.Serializer):
    period = serializers.RegexField(r'^\d{4}-\d{2}$', required=False)
    min_debt = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    template_id = serializers.CharField(default='debt_notice')
    channel = serializers.ChoiceField(choices=Channel.choices, default=Channel.EMAIL)


class DraftFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=DraftStatus.choices, required=False)
    period = serializers.CharField(required=False)
    channel = serializers.ChoiceField(choices=Channel.choices, required=False)
    template_id = serializers.CharField(required=False)


class DraftUpdateSerializer(serializers.Serializer):
    body = serializers.CharField(allow_blank=True)
    subject = serializers.CharField(max_length=255, required=False, allow_blank=True)
    recipient = serializers.CharField(max_length=254, required=False, allow_blank=True)


class BulkApproveSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)


class SendOptionsSerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=500, required=False)
    channel = serializers.ChoiceField(choices=Channel.choices, required=False)


# =============================================================================
# Output serializers
# =============================================================================

class AnnouncementSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source='author.get_display_name', read_only=True, default=None)

    class Meta:
        model = Announcement
        fields = [
            'id',
            'title',
            'body',
            'status',
            'audience',
            'author',
            'author_name',
            'published_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class TemplateSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField()
    subject = serializers.CharField()
    body = serializers.CharField()
    placeholders = serializers.ListField(child=serializers.CharField())


class RenderedTemplateSerializer(serializers.Serializer):
    subject = serializers.CharField()
    body = serializers.CharField()


class NotificationDraftSerializer(serializers.ModelSerializer):
    class Meta:
        model = NotificationDraft
        fields = [
            'id',
            'plot',
            'person',
            'plot_label',
            'resident_name',
            'channel',
            'recipient',
            'template_id',
            'subject',
            'body',
            'period',
            'debt_amount',
            'status',
            'attempts',
            'last_error',
            'skip_reason',
            'approved_by',
            'approved_at',
            'sent_at',
            'created_at',
        ]
        read_only_fields = fields


class DraftGenerateResultSerializer(serializers.Serializer):
    created = serializers.IntegerField()
    skipped = serializers.IntegerField()
    drafts = NotificationDraftSerializer(many=True)


class BulkApproveResultSerializer(serializers.Serializer):
    approved = serializers.ListField(child=serializers.CharField())
    failed = serializers.ListField(child=serializers.DictField())


class SendPreviewSerializer(serializers.Serializer):
    will_send = serializers.IntegerField()
    skipped = serializers.IntegerField()
    skip_reasons = serializers.DictField(child=serializers.IntegerField())
    sample = serializers.ListField(child=serializers.DictField())


class SendResultSerializer(serializers.Serializer):
    sent = serializers.IntegerField()
    failed = serializers.IntegerField()
    skipped = serializers.IntegerField()
    results = serializers.ListField(child=serializers.DictField())
