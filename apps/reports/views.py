from django.http import HttpResponse
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.accounts import rbac
from apps.accounts.permissions import IsFinanceStaff, IsOfficeStaff, capability_required

from .exceptions import ReportServiceError
from .exports import export_debtors, export_accruals, export_payments, export_registry
from .reports import ReportQueries
from .serializers import (
    # Input serializers
    PeriodRangeQuerySerializer,
    PeriodQuerySerializer,
    AccrualExportQuerySerializer,
    DateRangeQuerySerializer,
    # Response serializers
    MonthlyAggregateSerializer,
    MonthlyReportSerializer,
    DashboardSerializer,
    ErrorSerializer,
)

CanReadRegistry = capability_required(rbac.Capability.REGISTRY_READ)


def _csv_response(content, name):
    stamp = timezone.localdate().isoformat()
    response = HttpResponse(content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{name}-{stamp}.csv"'
    return response


@extend_schema(
    parameters=[
        OpenApiParameter('from', OpenApiTypes.STR, description='First month (YYYY-MM)'),
        OpenApiParameter('to', OpenApiTypes.STR, description='Last month (YYYY-MM)'),
    ],
    responses={200: MonthlyAggregateSerializer(many=True), 400: ErrorSerializer},
    description="Accrued, paid and running debt per month. Defaults to the last six months.",
    tags=['reports'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def monthly_aggregates(request):
    query_serializer = PeriodRangeQuerySerializer(data=request.query_params)
    query_serializer.is_valid(raise_exception=True)

    try:
        rows = ReportQueries.monthly_aggregates(**query_serializer.validated_data)
    except ReportServiceError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(MonthlyAggregateSerializer(rows, many=True).data)


@extend_schema(
    parameters=[OpenApiParameter('period', OpenApiTypes.STR, description='Month (YYYY-MM), current by default')],
    responses={200: MonthlyReportSerializer, 400: ErrorSerializer},
    description="Totals, accruals by category and appeals of one month.",
    tags=['reports'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def monthly_report(request):
    query_serializer = PeriodQuerySerializer(data=request.query_params)
    query_serializer.is_valid(raise_exception=True)

    try:
        report = ReportQueries.monthly_report(query_serializer.validated_data.get('period'))
    except ReportServiceError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(MonthlyReportSerializer(report).data)


@extend_schema(
    responses={200: DashboardSerializer},
    description="Counters for the office landing page.",
    tags=['reports'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOfficeStaff])
def dashboard(request):
    """Office dashboard - thin HTTP handler."""
    return Response(DashboardSerializer(ReportQueries.office_dashboard()).data)


@extend_schema(
    parameters=[OpenApiParameter('period', OpenApiTypes.STR, description='Month (YYYY-MM), all time by default')],
    responses={(200, 'text/csv'): OpenApiTypes.BINARY},
    tags=['reports'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def debtors_csv(request):
    query_serializer = PeriodQuerySerializer(data=request.query_params)
    query_serializer.is_valid(raise_exception=True)

    return _csv_response(export_debtors(**query_serializer.validated_data), 'debtors')


@extend_schema(
    parameters=[
        OpenApiParameter('period', OpenApiTypes.STR, description='Month (YYYY-MM)'),
        OpenApiParameter('category', OpenApiTypes.STR, description='membership, electricity or target'),
    ],
    responses={(200, 'text/csv'): OpenApiTypes.BINARY},
    tags=['reports'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def accruals_csv(request):
    query_serializer = AccrualExportQuerySerializer(data=request.query_params)
    query_serializer.is_valid(raise_exception=True)

    return _csv_response(export_accruals(**query_serializer.validated_data), 'accruals')


@extend_schema(
    parameters=[
        OpenApiParameter('date_from', OpenApiTypes.DATE),
        OpenApiParameter('date_to', OpenApiTypes.DATE),
    ],
    responses={(200, 'text/csv'): OpenApiTypes.BINARY},
    tags=['reports'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsFinanceStaff])
def payments_csv(request):
    query_serializer = DateRangeQuerySerializer(data=request.query_params)
    query_serializer.is_valid(raise_exception=True)

    return _csv_response(export_payments(**query_serializer.validated_data), 'payments')


@extend_schema(
    responses={(200, 'text/csv'): OpenApiTypes.BINARY},
    tags=['reports'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, CanReadRegistry])
def registry_csv(request):
    return _csv_response(export_registry(), 'registry')
