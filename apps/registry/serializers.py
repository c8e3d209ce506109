from rest_framework import serializers

from .models import Plot, Person, PlotOwnership, InviteCode, PersonStatus


# =============================================================================
# Input Serializers
# =============================================================================

class PlotInputSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    number = serializers.CharField(max_length=20)
    city_address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    cadastral_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    area_sqm = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)

    def validate_number(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Номер участка обязателен')
        return value


class RegistrySearchSerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, default='')
    status = serializers.ChoiceField(choices=PersonStatus.choices, required=False)


class AttachOwnerSerializer(serializers.Serializer):
    person_id = serializers.UUIDField()
    is_primary = serializers.BooleanField(default=False)


class DetachOwnerSerializer(serializers.Serializer):
    person_id = serializers.UUIDField()


class MergePersonsSerializer(serializers.Serializer):
    source_person_id = serializers.UUIDField()
    target_person_id = serializers.UUIDField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['source_person_id'] == attrs['target_person_id']:
            raise serializers.ValidationError({
                'target_person_id': 'Нельзя объединить карточку саму с собой'
            })
        return attrs


class DuplicateQuerySerializer(serializers.Serializer):
    full_name = serializers.CharField(required=False, allow_blank=True, default='')
    phone = serializers.CharField(required=False, allow_blank=True, default='')
    threshold = serializers.IntegerField(required=False, min_value=50, max_value=100, default=80)

    def validate(self, attrs):
        if not attrs['full_name'] and not attrs['phone']:
            raise serializers.ValidationError('Укажите ФИО или телефон')
        return attrs


class InviteCodeFilterSerializer(serializers.Serializer):
    person = serializers.UUIDField(required=False)
    used = serializers.BooleanField(required=False, allow_null=True, default=None)


class RegistryImportSerializer(serializers.Serializer):
    file = serializers.FileField()


# =============================================================================
# Output Serializers
# =============================================================================

class PlotOwnerSerializer(serializers.ModelSerializer):
    person_id = serializers.UUIDField(source='person.id', read_only=True)
    full_name = serializers.CharField(source='person.full_name', read_only=True)
    phone = serializers.CharField(source='person.phone', read_only=True)

    class Meta:
        model = PlotOwnership
        fields = ['person_id', 'full_name', 'phone', 'is_primary']


class PlotSerializer(serializers.ModelSerializer):
    label = serializers.CharField(read_only=True)
    owners = PlotOwnerSerializer(source='ownerships', many=True, read_only=True)

    class Meta:
        model = Plot
        fields = [
            'id',
            'street',
            'number',
            'label',
            'city_address',
            'cadastral_number',
            'area_sqm',
            'notes',
            'is_active',
            'owners',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class PlotBriefSerializer(serializers.ModelSerializer):
    label = serializers.CharField(read_only=True)

    class Meta:
        model = Plot
        fields = ['id', 'street', 'number', 'label']


class PersonSerializer(serializers.ModelSerializer):
    plots = serializers.SerializerMethodField()
    has_account = serializers.SerializerMethodField()

    class Meta:
        model = Person
        fields = [
            'id',
            'full_name',
            'phone',
            'email',
            'status',
            'plots',
            'has_account',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'is_active', 'created_at', 'updated_at']

    def get_plots(self, obj):
        return [
            {
                'id': ownership.plot.id,
                'label': ownership.plot.label,
                'is_primary': ownership.is_primary,
            }
            for ownership in obj.ownerships.all()
        ]

    def get_has_account(self, obj):
        return obj.user_id is not None


class InviteCodeSerializer(serializers.ModelSerializer):
    status = serializers.CharField(read_only=True)
    person_name = serializers.CharField(source='person.full_name', read_only=True)

    class Meta:
        model = InviteCode
        fields = ['id', 'person', 'person_name', 'status', 'created_at', 'used_at', 'used_by', 'revoked_at']
        read_only_fields = fields


class IssuedInviteCodeSerializer(serializers.Serializer):
    """Returned once, right after issuing: the only time the raw code is visible."""
    invite = InviteCodeSerializer()
    code = serializers.CharField()


class DuplicateCandidateSerializer(serializers.Serializer):
    person = PersonSerializer()
    score = serializers.IntegerField()
    match_type = serializers.CharField()


class DataIssueSerializer(serializers.Serializer):
    type = serializers.CharField()
    severity = serializers.CharField()
    description = serializers.CharField()
    person_id = serializers.UUIDField(source='person.id')
    person_name = serializers.CharField(source='person.full_name')
    related_person_ids = serializers.ListField(child=serializers.UUIDField())
