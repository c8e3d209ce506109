from rest_framework import viewsets
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.accounts.permissions import capability_required
from apps.accounts.rbac import Capability

from .serializers import AuditFilterSerializer, AuditLogSerializer
from .services import list_audit_events


class AuditPagination(PageNumberPagination):
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 200


@extend_schema(tags=['audit'])
class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read-only view over the audit log.

    list: GET /api/audit/events/
    retrieve: GET /api/audit/events/{id}/
    """

    serializer_class = AuditLogSerializer
    pagination_class = AuditPagination
    permission_classes = [capability_required(Capability.ADMIN_AUDIT, area='admin')]

    @extend_schema(
        parameters=[
            OpenApiParameter('action', str, description='Audit action code'),
            OpenApiParameter('actor', str, description='Actor user UUID'),
            OpenApiParameter('target_type', str),
            OpenApiParameter('target_id', str),
            OpenApiParameter('date_from', str, description='YYYY-MM-DD'),
            OpenApiParameter('date_to', str, description='YYYY-MM-DD'),
        ]
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    def get_queryset(self):
        if self.action != 'list':
            return list_audit_events()

        filter_serializer = AuditFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        filters = filter_serializer.validated_data

        return list_audit_events(
            action=filters.get('action'),
            actor_id=filters.get('actor'),
            target_type=filters.get('target_type'),
            target_id=filters.get('target_id'),
            date_from=filters.get('date_from'),
            date_to=filters.get('date_to'),
        )
