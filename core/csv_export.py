"""
CSV download helper used by the product and stock adjustment exports.
"""
import csv

from django.http import HttpResponse


def _cell(value):
    if value is None:
        return ''
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)


def csv_response(rows, columns, filename):
    """
    Build a CSV attachment response.

    Args:
        rows: Iterable of dicts (e.g. a ``.values()`` queryset)
        columns: List of (header, key) pairs in output order
        filename: Download filename for the Content-Disposition header

    Returns:
        HttpResponse with ``text/csv`` content and CRLF line endings
    """
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'

    writer = csv.writer(response, lineterminator='\r\n')
    writer.writerow([header for header, _ in columns])
    for row in rows:
        writer.writerow([_cell(row.get(key)) for _, key in columns])

    return response
