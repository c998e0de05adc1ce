from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import FastAPI, Request, status, HTTPException
from fastapi.responses import JSONResponse, Response
from taxitao.services.utils import AuthHelpers
from taxitao.core.config import Settings
import logging

logger = logging.getLogger(__name__)

auth = AuthHelpers()
settings = Settings()


class HTTPErrorHandler(BaseHTTPMiddleware):

    def __init__(self, app: FastAPI) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next) -> Response | JSONResponse:

        try:
            return await call_next(request)

        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(
                content={"detail": "Internal server error"},
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
            )


class VerifyToken(BaseHTTPMiddleware):

    def __init__(self, app: FastAPI) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next) -> Response | JSONResponse:

        if request.method == "OPTIONS":
            return await call_next(request)

        request.state.user = None
        if not request.url.path.startswith(tuple(settings.PUBLIC_PATHS)):
            try:
                request.state.user = auth.decode_token(request)
            except HTTPException as e:
                return JSONResponse({"detail": e.detail}, status_code=e.status_code)

        return await call_next(request)


class RequestLoggerMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        user_agent = request.headers.get("user-agent", "unknown")
        referer = request.headers.get("referer", "unknown")
        origin = request.headers.get("origin", "unknown")

        logger.info(
            "Incoming request: ip=%s method=%s path=%s user_agent=%s origin=%s referer=%s",
            client_ip, request.method, request.url.path, user_agent, origin, referer
        )

        response = await call_next(request)

        logger.info("Response status: %s for %s %s", response.status_code, request.method, request.url.path)
        return response
