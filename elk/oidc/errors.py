"""OAuth2/OIDC protocol errors and their JSON rendering."""

import logging

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404
HTTP_SERVER_ERROR = 500


class OIDCError(Exception):
    """An error surfaced to the caller as ``{"error": ...}``."""

    def __init__(
        self,
        error: str,
        status_code: int = HTTP_BAD_REQUEST,
        description: str | None = None,
    ) -> None:
        super().__init__(error)
        self.error = error
        self.status_code = status_code
        self.description = description

    def to_response(self) -> JSONResponse:
        body = {"error": self.error}
        if self.description:
            body["error_description"] = self.description
        return JSONResponse(body, status_code=self.status_code)


async def _handle_oidc_error(_request: Request, exc: OIDCError) -> JSONResponse:
    return exc.to_response()


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse({"error": "server_error"}, status_code=HTTP_SERVER_ERROR)


def register_error_handlers(app: FastAPI) -> None:
    """Install the protocol error and catch-all handlers."""
    app.add_exception_handler(OIDCError, _handle_oidc_error)
    app.add_exception_handler(Exception, _handle_unexpected)
