from django.http import HttpResponse
from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action, api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiTypes

from apps.accounts.permissions import IsFinanceStaff, IsPortalAdmin, IsResident
from apps.audit.services import request_id_from
from apps.registry.models import Plot

from .models import PenaltyAccrual
from .serializers import (
    ReasonSerializer,
    RequiredReasonSerializer,
    AccrualRunSerializer,
    AccrualGenerateSerializer,
    AccrualFilterSerializer,
    PaymentInputSerializer,
    PaymentFilterSerializer,
    ManualMatchSerializer,
    BulkMatchSerializer,
    StatementUploadSerializer,
    AutoAllocateSerializer,
    ManualAllocateSerializer,
    ReconcileQuerySerializer,
    PenaltyRunSerializer,
    PenaltyFilterSerializer,
    RequisitesInputSerializer,
    BillingPeriodSerializer,
    AccrualSerializer,
    AccrualPreviewRowSerializer,
    AllocationSerializer,
    PaymentSerializer,
    PaymentDetailSerializer,
    StatementImportSerializer,
    SummarySerializer,
    DebtorSerializer,
    BalanceSerializer,
    PenaltyPreviewRowSerializer,
    PenaltySerializer,
    RequisitesSerializer,
    CabinetPlotSerializer,
    CabinetQRQuerySerializer,
)
from .services import (
    close_period,
    reopen_period,
    list_periods,
    preview_accruals,
    generate_accruals,
    list_accruals,
    create_payment,
    get_payment,
    list_payments,
    auto_allocate,
    manual_allocate,
    unapply_allocation,
    unapply_payment_allocations,
    get_summary,
    list_debtors,
    list_balances,
    list_unallocated,
    list_overpayments,
    manual_match,
    run_auto_match,
    bulk_update_match,
    import_statement,
    preview_penalty,
    apply_penalties,
    recalc_penalties,
    list_penalties,
    void_penalty,
    unvoid_penalty,
    freeze_penalty,
    unfreeze_penalty,
    get_active_requisites,
    update_requisites,
    current_period,
    get_cabinet,
    get_resident_plot,
    PaymentQRGenerator,
    # Exceptions
    BillingServiceError,
    InvalidPeriodError,
    AccrualNotFoundError,
    PaymentNotFoundError,
    AllocationNotFoundError,
    PenaltyNotFoundError,
    AllocationError,
    MatchUpdateError,
    PenaltyStateError,
    StatementParseError,
    RequisitesNotConfiguredError,
)


class BillingPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _png_response(payload):
    response = HttpResponse(PaymentQRGenerator.render_png(payload), content_type='image/png')
    response['Cache-Control'] = 'no-store'
    return response


# =============================================================================
# Periods
# =============================================================================

@extend_schema(tags=['billing'])
class PeriodViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Accounting periods.

    list: All periods that were ever closed or reopened
    retrieve: One period with its snapshot
    close: Close a period and store its totals
    reopen: Reopen a closed period (administrator, reason required)
    """

    serializer_class = BillingPeriodSerializer
    permission_classes = [IsAuthenticated, IsFinanceStaff]
    lookup_field = 'period'
    lookup_value_regex = r'\d{4}-\d{2}'

    def get_queryset(self):
        return list_periods()

    @extend_schema(request=None, responses={200: BillingPeriodSerializer})
    @action(detail=True, methods=['post'])
    def close(self, request, period=None):
        """Close the period. Closing twice is a no-op."""
        try:
            billing_period = close_period(
                period=period,
                user=request.user,
                request_id=request_id_from(request),
            )
        except InvalidPeriodError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(BillingPeriodSerializer(billing_period).data)

    @extend_schema(request=RequiredReasonSerializer, responses={200: BillingPeriodSerializer})
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsPortalAdmin])
    def reopen(self, request, period=None):
        """Reopen the period."""
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            billing_period = reopen_period(
                period=period,
                user=request.user,
                reason=serializer.validated_data['reason'],
                request_id=request_id_from(request),
            )
        except InvalidPeriodError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(BillingPeriodSerializer(billing_period).data)


# =============================================================================
# Accruals
# =============================================================================

@extend_schema(tags=['billing'])
class AccrualViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Accruals.

    list: Filter with ?period=&plot=&category=
    preview: Rows an accrual run would create
    generate: Create the missing accruals
    """

    serializer_class = AccrualSerializer
    permission_classes = [IsAuthenticated, IsFinanceStaff]
    pagination_class = BillingPagination

    def get_queryset(self):
        if self.action != 'list':
            return list_accruals()

        filters = AccrualFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return list_accruals(
            period=filters.validated_data.get('period'),
            plot_id=filters.validated_data.get('plot'),
            category=filters.validated_data.get('category'),
        )

    @extend_schema(parameters=[
        OpenApiParameter('period', str, description='YYYY-MM'),
        OpenApiParameter('plot', str, description='Plot UUID'),
        OpenApiParameter('category', str),
    ])
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=AccrualRunSerializer, responses={200: AccrualPreviewRowSerializer(many=True)})
    @action(detail=False, methods=['post'])
    def preview(self, request):
        """Amounts per plot, with rows that already exist flagged."""
        serializer = AccrualRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rows = preview_accruals(**serializer.validated_data)
        return Response({
            'rows': AccrualPreviewRowSerializer(rows, many=True).data,
            'new_count': sum(1 for row in rows if not row['exists']),
            'existing_count': sum(1 for row in rows if row['exists']),
        })

    @extend_schema(request=AccrualGenerateSerializer)
    @action(detail=False, methods=['post'])
    def generate(self, request):
        """Create accruals; a closed period needs a reason."""
        serializer = AccrualGenerateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = generate_accruals(
                user=request.user,
                request_id=request_id_from(request),
                **serializer.validated_data
            )
        except BillingServiceError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(result, status=status.HTTP_201_CREATED)


# =============================================================================
# Payments
# =============================================================================

@extend_schema(tags=['billing'])
class PaymentViewSet(mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     mixins.CreateModelMixin,
                     viewsets.GenericViewSet):
    """
    Payments.

    list: Filter with ?plot=&match_status=&date_from=&date_to=&q=
    create: Record a payment by hand
    retrieve: Payment with its allocations
    match: Link a payment to a plot
    unapply: Remove every allocation of a payment
    bulk_match: Confirm, review or unmatch many payments
    auto_match: Re-run plot matching
    unallocated / overpayments: Reconciliation worklists
    import_statement: Upload a bank statement (CSV or XLSX)
    """

    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated, IsFinanceStaff]
    pagination_class = BillingPagination

    def get_queryset(self):
        if self.action != 'list':
            return list_payments().prefetch_related('allocations__accrual')

        filters = PaymentFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        data = filters.validated_data
        return list_payments(
            plot_id=data.get('plot'),
            match_status=data.get('match_status'),
            date_from=data.get('date_from'),
            date_to=data.get('date_to'),
            q=data['q'],
        )

    def get_serializer_class(self):
        if self.action == 'create':
            return PaymentInputSerializer
        if self.action == 'retrieve':
            return PaymentDetailSerializer
        return PaymentSerializer

    @extend_schema(parameters=[
        OpenApiParameter('plot', str, description='Plot UUID'),
        OpenApiParameter('match_status', str),
        OpenApiParameter('date_from', OpenApiTypes.DATE),
        OpenApiParameter('date_to', OpenApiTypes.DATE),
        OpenApiParameter('q', str),
    ])
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=PaymentInputSerializer, responses={201: PaymentSerializer})
    def create(self, request, *args, **kwargs):
        serializer = PaymentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            payment = create_payment(
                user=request.user,
                request_id=request_id_from(request),
                **serializer.validated_data
            )
        except BillingServiceError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PaymentSerializer(get_payment(payment.id)).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=ManualMatchSerializer, responses={200: PaymentSerializer})
    @action(detail=True, methods=['post'])
    def match(self, request, pk=None):
        """Link the payment to a plot by hand."""
        serializer = ManualMatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            manual_match(payment_id=pk, plot_id=serializer.validated_data['plot_id'], user=request.user)
        except PaymentNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except MatchUpdateError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(PaymentSerializer(get_payment(pk)).data)

    @extend_schema(request=None)
    @action(detail=True, methods=['post'])
    def unapply(self, request, pk=None):
        """Remove all allocations of the payment."""
        try:
            removed = unapply_payment_allocations(
                payment_id=pk,
                user=request.user,
                request_id=request_id_from(request),
            )
        except PaymentNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        return Response({'removed': removed})

    @extend_schema(request=BulkMatchSerializer)
    @action(detail=False, methods=['post'])
    def bulk_match(self, request):
        serializer = BulkMatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = bulk_update_match(user=request.user, **serializer.validated_data)
        return Response(result)

    @extend_schema(request=None)
    @action(detail=False, methods=['post'])
    def auto_match(self, request):
        """Match payments without a plot by purpose and payer."""
        return Response(run_auto_match())

    @extend_schema(responses={200: PaymentSerializer(many=True)})
    @action(detail=False, methods=['get'])
    def unallocated(self, request):
        """Payments with nothing allocated yet."""
        page = self.paginate_queryset(list_unallocated())
        return self.get_paginated_response(PaymentSerializer(page, many=True).data)

    @extend_schema(responses={200: PaymentSerializer(many=True)})
    @action(detail=False, methods=['get'])
    def overpayments(self, request):
        """Payments with money left after allocation."""
        page = self.paginate_queryset(list_overpayments())
        return self.get_paginated_response(PaymentSerializer(page, many=True).data)

    @extend_schema(request=StatementUploadSerializer, responses={201: StatementImportSerializer})
    @action(detail=False, methods=['post'], parser_classes=[MultiPartParser, FormParser])
    def import_statement(self, request):
        """Import payments from a bank statement."""
        serializer = StatementUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data['file']

        try:
            statement = import_statement(
                content=upload.read(),
                file_name=upload.name,
                user=request.user,
                request_id=request_id_from(request),
            )
        except StatementParseError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(StatementImportSerializer(statement).data, status=status.HTTP_201_CREATED)


# =============================================================================
# Allocation
# =============================================================================

@extend_schema(request=AutoAllocateSerializer, tags=['billing'])
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def auto_allocate_view(request):
    """FIFO allocation of matched payments to open accruals."""
    serializer = AutoAllocateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    result = auto_allocate(plot_id=serializer.validated_data.get('plot_id'), user=request.user)
    return Response(result)


@extend_schema(request=ManualAllocateSerializer, responses={201: AllocationSerializer}, tags=['billing'])
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def manual_allocate_view(request):
    """Apply part of a payment to a chosen accrual."""
    serializer = ManualAllocateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        allocation = manual_allocate(
            user=request.user,
            request_id=request_id_from(request),
            **serializer.validated_data
        )
    except (PaymentNotFoundError, AccrualNotFoundError) as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except AllocationError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(AllocationSerializer(allocation).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=['billing'])
@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def delete_allocation(request, pk):
    """Undo one allocation."""
    try:
        unapply_allocation(allocation_id=pk, user=request.user, request_id=request_id_from(request))
    except AllocationNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    return Response(status=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Reconciliation
# =============================================================================

@extend_schema(
    parameters=[OpenApiParameter('period', str, description='YYYY-MM, current month by default')],
    responses={200: SummarySerializer},
    tags=['billing'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def reconcile_summary(request):
    query = ReconcileQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)

    summary = get_summary(period=query.validated_data.get('period') or current_period())
    return Response(SummarySerializer(summary).data)


@extend_schema(
    parameters=[OpenApiParameter('period', str), OpenApiParameter('min_debt', OpenApiTypes.DECIMAL)],
    responses={200: DebtorSerializer(many=True)},
    tags=['billing'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def reconcile_debtors(request):
    """Plots in debt, largest first. Without ?period= all time is counted."""
    query = ReconcileQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)

    rows = list_debtors(
        period=query.validated_data.get('period'),
        min_debt=query.validated_data['min_debt'],
    )
    return Response(DebtorSerializer(rows, many=True).data)


@extend_schema(
    parameters=[OpenApiParameter('period', str)],
    responses={200: BalanceSerializer(many=True)},
    tags=['billing'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def reconcile_balances(request):
    query = ReconcileQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)

    rows = list_balances(period=query.validated_data.get('period'))
    return Response(BalanceSerializer(rows, many=True).data)


# =============================================================================
# Penalties
# =============================================================================

@extend_schema(tags=['billing'])
class PenaltyViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Late-payment penalties.

    list: Filter with ?period=&plot=&status=
    preview / apply / recalc: Penalty runs
    void / unvoid / freeze / unfreeze: Manual status changes (audited)
    """

    serializer_class = PenaltySerializer
    permission_classes = [IsAuthenticated, IsFinanceStaff]
    pagination_class = BillingPagination

    def get_queryset(self):
        if self.action != 'list':
            return PenaltyAccrual.objects.select_related('plot', 'accrual')

        filters = PenaltyFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return list_penalties(
            period=filters.validated_data.get('period'),
            plot_id=filters.validated_data.get('plot'),
            status=filters.validated_data.get('status'),
        )

    @extend_schema(request=PenaltyRunSerializer, responses={200: PenaltyPreviewRowSerializer(many=True)})
    @action(detail=False, methods=['post'])
    def preview(self, request):
        serializer = PenaltyRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rows = preview_penalty(**serializer.validated_data)
        return Response(PenaltyPreviewRowSerializer(rows, many=True).data)

    @extend_schema(request=PenaltyRunSerializer)
    @action(detail=False, methods=['post'])
    def apply(self, request):
        """Create or refresh penalties for every overdue accrual."""
        serializer = PenaltyRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = apply_penalties(
            user=request.user,
            request_id=request_id_from(request),
            **serializer.validated_data
        )
        return Response({**result, 'total': str(result['total'])})

    @extend_schema(request=PenaltyRunSerializer)
    @action(detail=False, methods=['post'])
    def recalc(self, request):
        serializer = PenaltyRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = recalc_penalties(
            user=request.user,
            as_of=serializer.validated_data.get('as_of'),
            rate=serializer.validated_data.get('rate'),
            request_id=request_id_from(request),
        )
        return Response({**result, 'total': str(result['total'])})

    def _change_status(self, request, pk, handler):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            penalty = handler(
                penalty_id=pk,
                user=request.user,
                reason=serializer.validated_data['reason'],
                request_id=request_id_from(request),
            )
        except PenaltyNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except PenaltyStateError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

        return Response(PenaltySerializer(penalty).data)

    @extend_schema(request=RequiredReasonSerializer, responses={200: PenaltySerializer})
    @action(detail=True, methods=['post'])
    def void(self, request, pk=None):
        return self._change_status(request, pk, void_penalty)

    @extend_schema(request=ReasonSerializer, responses={200: PenaltySerializer})
    @action(detail=True, methods=['post'])
    def unvoid(self, request, pk=None):
        return self._change_status(request, pk, unvoid_penalty)

    @extend_schema(request=ReasonSerializer, responses={200: PenaltySerializer})
    @action(detail=True, methods=['post'])
    def freeze(self, request, pk=None):
        return self._change_status(request, pk, freeze_penalty)

    @extend_schema(request=ReasonSerializer, responses={200: PenaltySerializer})
    @action(detail=True, methods=['post'])
    def unfreeze(self, request, pk=None):
        return self._change_status(request, pk, unfreeze_penalty)


# =============================================================================
# Requisites and QR
# =============================================================================

@extend_schema(request=RequisitesInputSerializer, responses={200: RequisitesSerializer}, tags=['billing'])
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def requisites(request):
    """GET the active requisites; POST saves a new version."""
    if request.method == 'GET':
        try:
            current = get_active_requisites()
        except RequisitesNotConfiguredError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        return Response(RequisitesSerializer(current).data)

    serializer = RequisitesInputSerializer(data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)

    saved = update_requisites(user=request.user, **serializer.validated_data)
    return Response(RequisitesSerializer(saved).data, status=status.HTTP_201_CREATED)


@extend_schema(
    parameters=[OpenApiParameter('period', str)],
    responses={(200, 'image/png'): OpenApiTypes.BINARY},
    tags=['billing'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def plot_qr(request, pk):
    """Payment QR for any plot (office)."""
    try:
        plot = Plot.objects.get(id=pk)
    except Plot.DoesNotExist:
        return Response({'error': 'Участок не найден'}, status=status.HTTP_404_NOT_FOUND)

    try:
        qr = PaymentQRGenerator.generate_for_plot(plot, request.query_params.get('period') or None)
    except RequisitesNotConfiguredError as e:
        return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

    return _png_response(qr['payload'])


# =============================================================================
# Resident cabinet
# =============================================================================

@extend_schema(responses={200: CabinetPlotSerializer(many=True)}, tags=['cabinet'])
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsResident])
def my_billing(request):
    """Accruals, payments and balance of the caller's plots."""
    return Response(CabinetPlotSerializer(get_cabinet(request.user), many=True).data)


@extend_schema(
    parameters=[OpenApiParameter('plot', str, required=True, description='Plot UUID')],
    responses={(200, 'image/png'): OpenApiTypes.BINARY},
    tags=['cabinet'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsResident])
def my_qr(request):
    """Payment QR for one of the caller's plots."""
    query = CabinetQRQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)

    try:
        plot = get_resident_plot(request.user, query.validated_data['plot'])
    except BillingServiceError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    try:
        qr = PaymentQRGenerator.generate_for_plot(plot)
    except RequisitesNotConfiguredError as e:
        return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

    return _png_response(qr['payload'])
