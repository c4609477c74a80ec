"""
A402 Facilitator HTTP API

FastAPI application exposing /verify, /settle, /list, /health, / and
/metrics on top of an A402Facilitator.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from a402.config import DEFAULT_RATE_LIMIT, FacilitatorSettings
from a402.exceptions import MalformedPayloadError, UnknownNetworkError
from a402.facilitator import A402Facilitator, InvalidReason
from a402.logging_config import setup_logging
from a402.types import FacilitatorRequest, dump

logger = logging.getLogger(__name__)

VERIFY_FAILED = "Verification failed"
SETTLE_FAILED = "Settlement failed"
TOO_MANY_REQUESTS = "Too many requests, please try again later"


def _verify_error(status_code: int, reason: str) -> JSONResponse:
    content = {"isValid": False, "invalidReason": reason}
    return JSONResponse(status_code=status_code, content=content)


def _settle_error(status_code: int, reason: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "errorReason": reason})


def _client_error_reason(error: Exception) -> str:
    if isinstance(error, MalformedPayloadError):
        return InvalidReason.MALFORMED_PAYLOAD.value
    return str(error)


def create_app(facilitator: A402Facilitator, rate_limit: str = DEFAULT_RATE_LIMIT) -> FastAPI:
    """
    Build the facilitator API.

    Args:
        facilitator: Configured facilitator the routes delegate to
        rate_limit: Request budget per client address shared by all routes,
            in limits notation such as "100/minute"

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        active = facilitator.chains.active
        logger.info(
            "A402 Facilitator ready: network=%s chainId=%s relayer=%s contract=%s",
            active.name,
            active.chain_id,
            facilitator.relayer_address,
            active.relayer_contract_address,
        )
        yield
        await facilitator.close()

    app = FastAPI(
        title="A402 Facilitator",
        description="Gasless payment facilitator for the A402 relayer",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.facilitator = facilitator
    app.state.limiter = Limiter(key_func=get_remote_address, application_limits=[rate_limit])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SlowAPIMiddleware)

    @app.middleware("http")
    async def record_request_duration(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        facilitator.metrics.observe_request(
            request.method,
            getattr(route, "path", request.url.path),
            response.status_code,
            time.perf_counter() - started,
        )
        return response

    @app.exception_handler(RateLimitExceeded)
    def rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        logger.warning("Rate limit exceeded for %s: %s", get_remote_address(request), exc.detail)
        return JSONResponse(status_code=429, content={"error": TOO_MANY_REQUESTS})

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected %s body: %s", request.url.path, exc.errors())
        reason = InvalidReason.MALFORMED_PAYLOAD.value
        if request.url.path == "/settle":
            return _settle_error(400, reason)
        return _verify_error(400, reason)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Service info endpoint"""
        return facilitator.info()

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return dump(facilitator.health())

    @app.get("/list")
    async def list_supported() -> dict[str, Any]:
        """Supported networks and assets"""
        return dump(await facilitator.list_supported())

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus metrics endpoint"""
        return Response(
            content=facilitator.metrics.render(),
            media_type=facilitator.metrics.content_type,
        )

    @app.post("/verify")
    async def verify(request: FacilitatorRequest):
        """
        Verify payment payload

        Args:
            request: Payment payload and requirements

        Returns:
            Verification result
        """
        try:
            result = await facilitator.verify(request)
        except (MalformedPayloadError, UnknownNetworkError) as e:
            logger.info("[VERIFY] Bad request: %s", e)
            return _verify_error(400, _client_error_reason(e))
        except Exception:
            logger.exception("[VERIFY] Error")
            return _verify_error(500, VERIFY_FAILED)
        return dump(result)

    @app.post("/settle")
    async def settle(request: FacilitatorRequest):
        """
        Settle payment on-chain

        Args:
            request: Payment payload and requirements

        Returns:
            Settlement result with transaction hash
        """
        try:
            result = await facilitator.settle(request)
        except (MalformedPayloadError, UnknownNetworkError) as e:
            logger.info("[SETTLE] Bad request: %s", e)
            return _settle_error(400, _client_error_reason(e))
        except Exception:
            logger.exception("[SETTLE] Error")
            return _settle_error(500, SETTLE_FAILED)
        return dump(result)

    return app


def main() -> None:
    """Start the facilitator server"""
    settings = FacilitatorSettings.from_env()
    setup_logging(settings.log_level)

    facilitator = A402Facilitator.from_settings(settings)
    app = create_app(facilitator, rate_limit=settings.rate_limit)

    logger.info("Starting A402 Facilitator on %s:%s", settings.host, settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
