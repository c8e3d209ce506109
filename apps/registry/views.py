from rest_framework import viewsets, status
from rest_framework.decorators import action, api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.audit.services import request_id_from

from .models import Plot, Person
from .permissions import RegistryAccess, CanWriteRegistry
from .serializers import (
    PlotInputSerializer,
    PlotSerializer,
    RegistrySearchSerializer,
    AttachOwnerSerializer,
    DetachOwnerSerializer,
    MergePersonsSerializer,
    DuplicateQuerySerializer,
    InviteCodeFilterSerializer,
    RegistryImportSerializer,
    PersonSerializer,
    InviteCodeSerializer,
    IssuedInviteCodeSerializer,
    DuplicateCandidateSerializer,
    DataIssueSerializer,
)
from .services import (
    create_plot,
    update_plot,
    attach_owner,
    detach_owner,
    search_registry,
    find_potential_duplicates,
    detect_issues,
    merge_persons,
    create_invite_code,
    regenerate_invite_code,
    list_invite_codes,
    import_registry_csv,
    # Exceptions
    DuplicatePlotError,
    PlotNotFoundError,
    PersonNotFoundError,
    OwnershipNotFoundError,
    InvalidMergeError,
    RegistryImportError,
)


class RegistryPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


@extend_schema(tags=['registry'])
class PlotViewSet(viewsets.ModelViewSet):
    """
    Plots of the community.

    list: All plots (filter with ?q= on line/number)
    create: Add a plot (line + number must be unique)
    retrieve: Plot with its owners
    update / partial_update: Edit a plot
    destroy: Deactivate a plot (plots with billing history are never deleted)
    """

    serializer_class = PlotSerializer
    permission_classes = [IsAuthenticated, RegistryAccess]
    pagination_class = RegistryPagination

    def get_queryset(self):
        queryset = Plot.objects.prefetch_related('ownerships__person')
        q = self.request.query_params.get('q', '').strip()
        if q:
            queryset = queryset.filter(number__icontains=q) | queryset.filter(street__iexact=q)
        return queryset

    def get_serializer_class(self):
        if self.action in ['create', 'update', 'partial_update']:
            return PlotInputSerializer
        return PlotSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            plot = create_plot(**serializer.validated_data)
        except DuplicatePlotError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(PlotSerializer(plot).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        try:
            plot = update_plot(plot_id=kwargs['pk'], **serializer.validated_data)
        except PlotNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except DuplicatePlotError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(PlotSerializer(plot).data)

    def destroy(self, request, *args, **kwargs):
        plot = self.get_object()
        plot.is_active = False
        plot.save(update_fields=['is_active', 'updated_at'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def attach_owner(self, request, pk=None):
        """Link a registry person to this plot."""
        serializer = AttachOwnerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            attach_owner(plot_id=pk, **serializer.validated_data)
        except (PlotNotFoundError, PersonNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        plot = self.get_queryset().get(id=pk)
        return Response(PlotSerializer(plot).data)

    @action(detail=True, methods=['post'])
    def detach_owner(self, request, pk=None):
        """Unlink a person from this plot."""
        serializer = DetachOwnerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            detach_owner(plot_id=pk, person_id=serializer.validated_data['person_id'])
        except OwnershipNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(tags=['registry'])
class PersonViewSet(viewsets.ModelViewSet):
    """
    Owners and residents.

    list: Search by plot, name, phone or email (?q=, ?status=)
    create / update / partial_update: Edit a registry card
    duplicates: Probable duplicates for a name/phone
    issues: Data-quality report
    merge: Merge two cards
    invite_codes: List or issue invite codes of a person
    """

    serializer_class = PersonSerializer
    permission_classes = [IsAuthenticated, RegistryAccess]
    pagination_class = RegistryPagination
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']

    def get_queryset(self):
        if self.action != 'list':
            return Person.objects.filter(is_active=True).prefetch_related('ownerships__plot')

        search = RegistrySearchSerializer(data=self.request.query_params)
        search.is_valid(raise_exception=True)
        return search_registry(
            q=search.validated_data['q'],
            status=search.validated_data.get('status'),
        )

    @extend_schema(parameters=[OpenApiParameter('q', str), OpenApiParameter('status', str)])
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(responses={200: DuplicateCandidateSerializer(many=True)})
    @action(detail=False, methods=['get'])
    def duplicates(self, request):
        """Probable duplicates of a name/phone pair."""
        query = DuplicateQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        candidates = find_potential_duplicates(
            full_name=query.validated_data['full_name'],
            phone=query.validated_data['phone'],
            threshold=query.validated_data['threshold'],
        )
        data = [
            {'person': person, 'score': score, 'match_type': match_type}
            for person, score, match_type in candidates
        ]
        return Response(DuplicateCandidateSerializer(data, many=True).data)

    @action(detail=False, methods=['get'])
    def issues(self, request):
        """Incomplete and conflicting registry cards."""
        report = detect_issues()
        return Response({
            'summary': report['summary'],
            'issues': DataIssueSerializer(report['issues'], many=True).data,
        })

    @extend_schema(request=MergePersonsSerializer, responses={200: PersonSerializer})
    @action(detail=False, methods=['post'], permission_classes=[IsAuthenticated, CanWriteRegistry])
    def merge(self, request):
        """Merge a duplicate card into the one that is kept."""
        serializer = MergePersonsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            person = merge_persons(
                merged_by=request.user,
                request_id=request_id_from(request),
                **serializer.validated_data
            )
        except PersonNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidMergeError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PersonSerializer(person).data)

    @extend_schema(responses={200: InviteCodeSerializer(many=True), 201: IssuedInviteCodeSerializer})
    @action(detail=True, methods=['get', 'post'])
    def invite_codes(self, request, pk=None):
        """GET lists the person's codes, POST issues a new one."""
        person = self.get_object()

        if request.method == 'GET':
            codes = list_invite_codes(person_id=person.id)
            return Response(InviteCodeSerializer(codes, many=True).data)

        invite, code = create_invite_code(person_id=person.id, created_by=request.user)
        return Response(
            {'invite': InviteCodeSerializer(invite).data, 'code': code},
            status=status.HTTP_201_CREATED
        )

    @extend_schema(request=None, responses={201: IssuedInviteCodeSerializer})
    @action(detail=True, methods=['post'])
    def regenerate_invite(self, request, pk=None):
        """Revoke active codes and issue a new one."""
        person = self.get_object()
        invite, code = regenerate_invite_code(person_id=person.id, created_by=request.user)
        return Response(
            {'invite': InviteCodeSerializer(invite).data, 'code': code},
            status=status.HTTP_201_CREATED
        )


@extend_schema(
    parameters=[
        OpenApiParameter('person', str, description='Person UUID'),
        OpenApiParameter('used', bool),
    ],
    responses={200: InviteCodeSerializer(many=True)},
    tags=['registry'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, RegistryAccess])
def invite_code_list(request):
    """All invite codes, optionally filtered by person and usage."""
    filters = InviteCodeFilterSerializer(data=request.query_params)
    filters.is_valid(raise_exception=True)

    codes = list_invite_codes(
        person_id=filters.validated_data.get('person'),
        used=filters.validated_data.get('used'),
    )
    return Response(InviteCodeSerializer(codes, many=True).data)


@extend_schema(request=RegistryImportSerializer, tags=['registry'])
@api_view(['POST'])
@permission_classes([IsAuthenticated, CanWriteRegistry])
@parser_classes([MultiPartParser, FormParser])
def import_registry(request):
    """Import plots and owners from a CSV file."""
    serializer = RegistryImportSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        summary = import_registry_csv(content=serializer.validated_data['file'].read())
    except RegistryImportError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(summary)
