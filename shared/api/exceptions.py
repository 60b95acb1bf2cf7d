"""
DRF exception handler for booking errors

Renders BookingError subclasses as `{code, detail, ...extra}` with the
status each error declares. Everything else goes through DRF's default.
"""

import logging

from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from apps.bookings.domain.exceptions import BookingError

logger = logging.getLogger(__name__)


def booking_exception_handler(exc, context):
    if isinstance(exc, BookingError):
        view = context.get('view')
        logger.info(
            f"{exc.code} from {view.__class__.__name__ if view else 'unknown view'}: {exc.message}"
        )
        return Response(exc.to_dict(), status=exc.http_status)
    return exception_handler(exc, context)
