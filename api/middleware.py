"""Request-scoped middleware for API requests."""

from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from utils.actor_context import set_actor, clear_actor

AGENCY_HEADER = "X-Agency-ID"
MEMBER_HEADER = "X-Member-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class ActorContextMiddleware(BaseHTTPMiddleware):
    """
    Sets the actor context from gateway headers.

    The upstream auth gateway authenticates the caller and forwards:
    - X-Agency-ID: tenant of the caller (required)
    - X-Member-ID: acting member (optional; absent for system callers)

    Public paths bypass the check entirely. Context is always cleared
    after the request.
    """

    PUBLIC_PATHS = ["/health", "/docs", "/openapi.json"]

    def _is_public_path(self, path: str) -> bool:
        return any(path == p or path.startswith(p + "/") for p in self.PUBLIC_PATHS)

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        raw_agency = request.headers.get(AGENCY_HEADER)
        if not raw_agency:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    f"{AGENCY_HEADER} header is required",
                    request,
                ).model_dump(mode="json"),
            )

        raw_member = request.headers.get(MEMBER_HEADER)
        try:
            agency_id = UUID(raw_agency)
            member_id = UUID(raw_member) if raw_member else None
        except ValueError:
            return JSONResponse(
                status_code=400,
                content=error_response(
                    ErrorCodes.INVALID_REQUEST,
                    f"{AGENCY_HEADER} and {MEMBER_HEADER} must be UUIDs",
                    request,
                ).model_dump(mode="json"),
            )

        set_actor(agency_id, member_id)
        request.state.agency_id = agency_id
        request.state.member_id = member_id

        try:
            return await call_next(request)
        finally:
            clear_actor()
