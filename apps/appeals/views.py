from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.accounts.permissions import IsResident
from apps.audit.services import request_id_from

from .permissions import CanReadAppeals, CanManageAppeals
from .serializers import (
    AppealCreateSerializer,
    AppealFilterSerializer,
    StatusChangeSerializer,
    CommentCreateSerializer,
    AssignSerializer,
    CategoryChangeSerializer,
    AppealListSerializer,
    AppealDetailSerializer,
    AppealCommentSerializer,
    AppealActivitySerializer,
    InboxStatsSerializer,
    RemindOverdueResultSerializer,
)
from .services import (
    create_appeal,
    get_appeal,
    change_status,
    add_comment,
    list_comments,
    assign_appeal,
    unassign_appeal,
    change_category,
    reapply_rules,
    list_appeals,
    inbox_stats,
    remind_overdue,
    # Exceptions
    AppealServiceError,
    AppealNotFoundError,
    AppealPermissionError,
    AppealValidationError,
    InvalidTransitionError,
)


class AppealPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


@extend_schema(tags=['appeals'])
class AppealViewSet(mixins.ListModelMixin,
                    mixins.RetrieveModelMixin,
                    mixins.CreateModelMixin,
                    viewsets.GenericViewSet):
    """
    Appeals.

    Residents see and create their own appeals; board members with
    ``office.appeals.read`` see the whole inbox.

    list: Filter with ?status=&q=&assigned_to=&category= (status also accepts overdue / due_soon)
    create: Submit an appeal (triage, rules and SLA run automatically)
    retrieve: Appeal with comments
    set_status: Move through the workflow (chairman, secretary, admin)
    comments: List or add replies
    assign / unassign: Set the responsible role or board member
    category: Re-categorize
    activity: History feed
    triage: Re-run routing rules
    stats: Inbox counters
    remind_overdue: Record reminders on overdue appeals
    """

    serializer_class = AppealListSerializer
    permission_classes = [IsAuthenticated, IsResident]
    pagination_class = AppealPagination

    def get_queryset(self):
        if self.action != 'list':
            return list_appeals(user=self.request.user)

        filters = AppealFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        data = filters.validated_data
        return list_appeals(
            user=self.request.user,
            status=data.get('status'),
            q=data['q'],
            assigned_to=data.get('assigned_to') or None,
            category=data.get('category'),
        )

    def get_serializer_class(self):
        if self.action == 'create':
            return AppealCreateSerializer
        if self.action == 'retrieve':
            return AppealDetailSerializer
        return AppealListSerializer

    def _detail(self, appeal):
        return AppealDetailSerializer(appeal, context=self.get_serializer_context()).data

    @extend_schema(parameters=[
        OpenApiParameter('status', str, description='new, in_progress, needs_info, closed, overdue, due_soon'),
        OpenApiParameter('q', str),
        OpenApiParameter('assigned_to', str, description='"me", a role or a user UUID'),
        OpenApiParameter('category', str),
    ])
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=AppealCreateSerializer, responses={201: AppealDetailSerializer})
    def create(self, request, *args, **kwargs):
        serializer = AppealCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            appeal = create_appeal(author=request.user, **serializer.validated_data)
        except AppealValidationError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(self._detail(get_appeal(appeal_id=appeal.id, user=request.user)),
                        status=status.HTTP_201_CREATED)

    @extend_schema(request=StatusChangeSerializer, responses={200: AppealDetailSerializer})
    @action(detail=True, methods=['post'], url_path='status',
            permission_classes=[IsAuthenticated, CanManageAppeals])
    def set_status(self, request, pk=None):
        """Change the status; an optional comment is stored as a reply."""
        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            appeal = change_status(
                appeal_id=pk,
                new_status=serializer.validated_data['status'],
                user=request.user,
                comment=serializer.validated_data['comment'],
            )
        except AppealNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except AppealPermissionError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except InvalidTransitionError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(self._detail(appeal))

    @extend_schema(request=CommentCreateSerializer, responses={200: AppealCommentSerializer(many=True)})
    @action(detail=True, methods=['get', 'post'])
    def comments(self, request, pk=None):
        """GET the visible replies; POST adds one."""
        try:
            appeal = get_appeal(appeal_id=pk, user=request.user)
        except AppealNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        if request.method == 'GET':
            comments = list_comments(appeal=appeal, user=request.user)
            return Response(AppealCommentSerializer(comments, many=True).data)

        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            comment = add_comment(appeal_id=appeal.id, user=request.user, **serializer.validated_data)
        except AppealPermissionError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except AppealValidationError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(AppealCommentSerializer(comment).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=AssignSerializer, responses={200: AppealDetailSerializer})
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, CanManageAppeals])
    def assign(self, request, pk=None):
        serializer = AssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            appeal = assign_appeal(
                appeal_id=pk,
                user=request.user,
                role=data.get('role'),
                assigned_to_id=data.get('assigned_to'),
                due_at=data.get('due_at'),
            )
        except AppealNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except AppealPermissionError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except AppealValidationError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(self._detail(appeal))

    @extend_schema(request=None, responses={200: AppealDetailSerializer})
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, CanManageAppeals])
    def unassign(self, request, pk=None):
        try:
            appeal = unassign_appeal(appeal_id=pk, user=request.user)
        except AppealNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except AppealPermissionError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(self._detail(appeal))

    @extend_schema(request=CategoryChangeSerializer, responses={200: AppealDetailSerializer})
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, CanManageAppeals])
    def category(self, request, pk=None):
        serializer = CategoryChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            appeal = change_category(
                appeal_id=pk,
                category=serializer.validated_data['category'],
                user=request.user,
            )
        except AppealNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except AppealServiceError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(self._detail(appeal))

    @extend_schema(responses={200: AppealActivitySerializer(many=True)})
    @action(detail=True, methods=['get'], permission_classes=[IsAuthenticated, CanReadAppeals])
    def activity(self, request, pk=None):
        try:
            appeal = get_appeal(appeal_id=pk, user=request.user)
        except AppealNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        entries = appeal.activity.select_related('actor')
        return Response(AppealActivitySerializer(entries, many=True).data)

    @extend_schema(request=None)
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, CanManageAppeals])
    def triage(self, request, pk=None):
        """Run the routing rules again."""
        try:
            rule = reapply_rules(appeal_id=pk, user=request.user)
        except AppealNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except AppealServiceError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        appeal = get_appeal(appeal_id=pk, user=request.user)
        return Response({
            'rule_id': rule['id'] if rule else None,
            'appeal': self._detail(appeal),
        })

    @extend_schema(responses={200: InboxStatsSerializer})
    @action(detail=False, methods=['get'], permission_classes=[IsAuthenticated, CanReadAppeals])
    def stats(self, request):
        return Response(InboxStatsSerializer(inbox_stats(user=request.user)).data)

    @extend_schema(request=None, responses={200: RemindOverdueResultSerializer})
    @action(detail=False, methods=['post'], url_path='remind-overdue',
            permission_classes=[IsAuthenticated, CanManageAppeals])
    def remind_overdue(self, request):
        """Record reminders on every overdue appeal (audited)."""
        result = remind_overdue(user=request.user, request_id=request_id_from(request))
        return Response(RemindOverdueResultSerializer(result).data)
