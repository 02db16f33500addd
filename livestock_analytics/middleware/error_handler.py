"""
Global error handling middleware.

Routers translate the record store errors they expect. Anything that escapes
them is mapped here so a client always gets a JSON body with `error` and
`detail`.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Any, Callable, Dict

from livestock_analytics.infrastructure.record_store_client import (
    DuplicateAlertError,
    RecordNotFoundError,
    RecordStoreError,
)


logger = logging.getLogger(__name__)


def _error_body(error: str, detail: Any, **extra) -> Dict[str, Any]:
    return {"error": error, "detail": detail, **extra}


def _record_store_response(request: Request, e: RecordStoreError) -> JSONResponse:
    """
    Response for a record store failure.

    Missing records and duplicate alerts keep their own status. Upstream
    server errors become 502 since the fault is not in this service.
    """
    if isinstance(e, RecordNotFoundError):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=_error_body("Record not found", e.message, path=request.url.path),
        )
    if isinstance(e, DuplicateAlertError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=_error_body("Duplicate alert", "An identical alert already exists in this window"),
        )

    status_code = e.status_code if e.status_code < 500 else status.HTTP_502_BAD_GATEWAY
    return JSONResponse(
        status_code=status_code,
        content=_error_body("Record store error", e.message, upstreamStatus=e.status_code),
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns consistent error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and handle any exceptions.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            Response object
        """
        context = {"path": request.url.path, "method": request.method}
        try:
            return await call_next(request)

        except RecordStoreError as e:
            logger.error(
                f"Record store error: {e.message}",
                extra={**context, "status_code": e.status_code},
            )
            return _record_store_response(request, e)

        except ValidationError as e:
            # Request bodies are validated by FastAPI, so this is a malformed stored record
            logger.error(f"Invalid record from record store: {e}", extra=context)
            return JSONResponse(
                status_code=status.HTTP_502_BAD_GATEWAY,
                content=_error_body(
                    "Invalid record from record store",
                    [
                        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                        for error in e.errors()
                    ],
                ),
            )

        except ValueError as e:
            logger.warning(f"Validation error: {str(e)}", extra=context)
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=_error_body("Invalid request", str(e)),
            )

        except Exception as e:
            logger.exception(f"Unhandled exception: {str(e)}", extra=context)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=_error_body("Internal server error", "An unexpected error occurred"),
            )
