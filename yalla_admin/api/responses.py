"""Shared response helpers"""

from fastapi import Response

from yalla_admin.utils.dates import local_today

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def csv_response(content: bytes, prefix: str) -> Response:
    """Attachment response for an exported CSV file"""
    file_name = f"{prefix}_{local_today().isoformat()}.csv"
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
