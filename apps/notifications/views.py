from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiTypes

from apps.accounts.permissions import IsFinanceStaff, IsOfficeStaff
from apps.billing.services import InvalidPeriodError

from .models import Announcement, NotificationDraft
from .permissions import AnnouncementAccess
from .serializers import (
    AnnouncementInputSerializer,
    AnnouncementUpdateSerializer,
    AnnouncementFilterSerializer,
    AnnouncementSerializer,
    TemplatePreviewSerializer,
    TemplateSerializer,
    RenderedTemplateSerializer,
    DraftGenerateSerializer,
    DraftFilterSerializer,
    DraftUpdateSerializer,
    BulkApproveSerializer,
    SendOptionsSerializer,
    NotificationDraftSerializer,
    DraftGenerateResultSerializer,
    BulkApproveResultSerializer,
    SendPreviewSerializer,
    SendResultSerializer,
)
from .services import (
    create_announcement,
    update_announcement,
    delete_announcement,
    toggle_publish,
    list_announcements,
    list_visible,
    list_templates,
    render_template,
    generate_debtor_drafts,
    list_drafts,
    approve_draft,
    bulk_approve as bulk_approve_drafts,
    cancel_draft,
    update_draft_body,
    drafts_summary,
    preview_send,
    send_ready_drafts,
    AnnouncementNotFoundError,
    DraftNotFoundError,
    DraftStateError,
    UnknownTemplateError,
    NotificationPermissionError,
)


class NotificationPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


# =============================================================================
# Announcements
# =============================================================================

@extend_schema(tags=['announcements'])
class AnnouncementViewSet(mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          viewsets.GenericViewSet):
    """
    Board announcements.

    list: Every announcement, drafts included (office)
    create: New announcement, optionally published right away
    partial_update: Change title, body or audience
    destroy: Delete an announcement
    publish: Toggle published state
    feed: Published announcements for the current user (residents too)
    """

    serializer_class = AnnouncementSerializer
    permission_classes = [IsAuthenticated, AnnouncementAccess]
    pagination_class = NotificationPagination

    def get_queryset(self):
        if self.action == 'feed':
            return list_visible(user=self.request.user, q=self.request.query_params.get('q', ''))
        if self.action == 'list':
            filters = AnnouncementFilterSerializer(data=self.request.query_params)
            filters.is_valid(raise_exception=True)
            return list_announcements(**filters.validated_data)
        return Announcement.objects.select_related('author')

    @extend_schema(request=AnnouncementInputSerializer, responses={201: AnnouncementSerializer})
    def create(self, request, *args, **kwargs):
        serializer = AnnouncementInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            announcement = create_announcement(author=request.user, **serializer.validated_data)
        except NotificationPermissionError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(AnnouncementSerializer(announcement).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=AnnouncementUpdateSerializer, responses={200: AnnouncementSerializer})
    def partial_update(self, request, pk=None):
        serializer = AnnouncementUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            announcement = update_announcement(
                announcement_id=pk,
                user=request.user,
                **serializer.validated_data
            )
        except AnnouncementNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotificationPermissionError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(AnnouncementSerializer(announcement).data)

    def destroy(self, request, pk=None):
        try:
            delete_announcement(announcement_id=pk, user=request.user)
        except AnnouncementNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotificationPermissionError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=None, responses={200: AnnouncementSerializer})
    @action(detail=True, methods=['post'])
    def publish(self, request, pk=None):
        try:
            announcement = toggle_publish(announcement_id=pk, user=request.user)
        except AnnouncementNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotificationPermissionError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(AnnouncementSerializer(announcement).data)

    @extend_schema(
        parameters=[OpenApiParameter('q', OpenApiTypes.STR, description='Search in title and body')],
        responses={200: AnnouncementSerializer(many=True)},
    )
    @action(detail=False, methods=['get'], permission_classes=[IsAuthenticated])
    def feed(self, request):
        page = self.paginate_queryset(self.get_queryset())
        return self.get_paginated_response(AnnouncementSerializer(page, many=True).data)


# =============================================================================
# Templates
# =============================================================================

@extend_schema(responses={200: TemplateSerializer(many=True)}, tags=['notifications'])
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def template_list(request):
    """Available message templates with their placeholders."""
    return Response(TemplateSerializer(list_templates(), many=True).data)


@extend_schema(
    request=TemplatePreviewSerializer,
    responses={200: RenderedTemplateSerializer},
    tags=['notifications'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def template_preview(request):
    """Render a template with the given placeholder values."""
    serializer = TemplatePreviewSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        rendered = render_template(
            serializer.validated_data['template_id'],
            serializer.validated_data['values'],
        )
    except UnknownTemplateError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(rendered)


# =============================================================================
# Drafts
# =============================================================================

@extend_schema(tags=['notifications'])
class NotificationDraftViewSet(mixins.ListModelMixin,
                               mixins.RetrieveModelMixin,
                               viewsets.GenericViewSet):
    """
    Debtor notification drafts.

    list: Drafts filtered by status, period, channel or template
    generate: One draft per debtor plot
    partial_update: Edit the text of a draft before approval
    approve / cancel: Per-draft state changes
    bulk_approve: Approve several drafts at once
    summary: Counts by status
    send_preview: Dry run of a send
    send: Deliver approved drafts
    """

    serializer_class = NotificationDraftSerializer
    permission_classes = [IsAuthenticated, IsFinanceStaff]
    pagination_class = NotificationPagination
    queryset = NotificationDraft.objects.all()

    def get_queryset(self):
        if self.action != 'list':
            return NotificationDraft.objects.all()
        filters = DraftFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return list_drafts(**filters.validated_data)

    @extend_schema(request=DraftUpdateSerializer, responses={200: NotificationDraftSerializer})
    def partial_update(self, request, pk=None):
        serializer = DraftUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            draft = update_draft_body(draft_id=pk, **serializer.validated_data)
        except DraftNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except DraftStateError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(NotificationDraftSerializer(draft).data)

    @extend_schema(request=DraftGenerateSerializer, responses={201: DraftGenerateResultSerializer})
    @action(detail=False, methods=['post'])
    def generate(self, request):
        serializer = DraftGenerateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = generate_debtor_drafts(user=request.user, **serializer.validated_data)
        except (UnknownTemplateError, InvalidPeriodError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(DraftGenerateResultSerializer(result).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={200: NotificationDraftSerializer})
    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        try:
            draft = approve_draft(draft_id=pk, user=request.user)
        except DraftNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except DraftStateError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(NotificationDraftSerializer(draft).data)

    @extend_schema(request=None, responses={200: NotificationDraftSerializer})
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        try:
            draft = cancel_draft(draft_id=pk, user=request.user)
        except DraftNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except DraftStateError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(NotificationDraftSerializer(draft).data)

    @extend_schema(request=BulkApproveSerializer, responses={200: BulkApproveResultSerializer})
    @action(detail=False, methods=['post'], url_path='bulk-approve')
    def bulk_approve(self, request):
        serializer = BulkApproveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = bulk_approve_drafts(draft_ids=serializer.validated_data['ids'], user=request.user)
        return Response(result)

    @action(detail=False, methods=['get'])
    def summary(self, request):
        return Response(drafts_summary())

    @extend_schema(request=SendOptionsSerializer, responses={200: SendPreviewSerializer})
    @action(detail=False, methods=['post'], url_path='send-preview')
    def send_preview(self, request):
        serializer = SendOptionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        return Response(preview_send(**serializer.validated_data))

    @extend_schema(request=SendOptionsSerializer, responses={200: SendResultSerializer})
    @action(detail=False, methods=['post'])
    def send(self, request):
        serializer = SendOptionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        return Response(send_ready_drafts(**serializer.validated_data))
