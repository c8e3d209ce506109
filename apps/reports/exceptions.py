"""
Custom exceptions for the reports app.

Views catch :class:`ReportServiceError` and answer 400:

    try:
        data = ReportQueries.monthly_report('2024-13')
    except ReportServiceError as e:
        return Response({'error': str(e)}, status=400)
"""


class ReportServiceError(Exception):
    """Base exception for all report errors."""
    pass


class InvalidReportPeriodError(ReportServiceError):
    """Period is not a valid ``YYYY-MM`` month."""
    pass


class InvalidDateRangeError(ReportServiceError):
    """Start date is after end date."""
    pass
