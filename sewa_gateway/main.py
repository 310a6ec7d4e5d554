from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from .commands import CommandError, InvalidFormat, build_forwarding_payload, command_info, map_command, validate
from .config import Settings, settings as default_settings
from .forwarder import QueueForwarder
from .logging import configure_logging
from .models import CommandResponse, ErrorResponse, NotFoundResponse

logger = logging.getLogger(__name__)

FORM_TYPES = ("application/x-www-form-urlencoded",)


async def read_event(request: Request):
    """Decode the body as a JSON value or a form; an empty body is ``{}``."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_TYPES):
        try:
            form = await request.form()
        except StarletteHTTPException as exc:
            raise InvalidFormat(str(exc.detail))
        return dict(form)
    if not (await request.body()).strip():
        return {}
    try:
        return await request.json()
    except ValueError:
        raise InvalidFormat("Request body must be valid JSON")


def available_endpoints(app: FastAPI) -> list[str]:
    endpoints = []
    for route in app.routes:
        if isinstance(route, APIRoute):
            for method in sorted(route.methods):
                endpoints.append(f"{method} {route.path}")
    return endpoints


def create_app(cfg: Settings | None = None, forwarder: QueueForwarder | None = None) -> FastAPI:
    cfg = cfg or default_settings
    forwarder = forwarder or QueueForwarder(cfg.queue_url, timeout=cfg.queue_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await forwarder.start()
        logger.info("Sewa gateway ready on %s:%s", cfg.host, cfg.port)
        yield
        await forwarder.stop()

    app = FastAPI(title="Sewa Device Gateway", version="1.0.0", lifespan=lifespan)
    app.state.forwarder = forwarder

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if cfg.log_requests:
        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            logger.info("%s %s", request.method, request.url.path)
            logger.debug("Headers: %s", dict(request.headers))
            return await call_next(request)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unsupported methods on known paths look the same
        if exc.status_code in (404, 405):
            body = NotFoundResponse(
                path=request.url.path,
                method=request.method,
                available_endpoints=available_endpoints(request.app),
            )
            return JSONResponse(body.wire(), status_code=404)
        body = ErrorResponse(error=str(exc.detail), message=str(exc.detail))
        return JSONResponse(body.wire(), status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.get("/", response_class=PlainTextResponse)
    def index():
        return "Hello, World!"

    @app.get("/health")
    def health():
        return {
            "status": "healthy",
            "queueUrl": forwarder.url,
            "pendingSubmissions": forwarder.pending,
        }

    @app.post("/getall")
    async def getall(request: Request):
        try:
            event = validate(await read_event(request))
            logger.debug("Body: %s", event)
            state = map_command(event)
            body = CommandResponse(command_info=command_info(event)).wire()
            payload = build_forwarding_payload(event, body, state)
            forwarder.submit(payload)
        except CommandError as exc:
            logger.warning("Rejected event on /getall: %s", exc.message)
            error = ErrorResponse(error=exc.error, message=exc.message)
            return JSONResponse(error.wire(), status_code=400)
        except Exception as exc:
            logger.exception("Failed to process event on /getall")
            error = ErrorResponse(error="Internal server error", message=str(exc))
            return JSONResponse(error.wire(), status_code=500)
        logger.info(
            "Device %s -> %s (queue %s)",
            state.deviceid,
            body["commandInfo"]["mapped"],
            payload.queue_name,
        )
        return body

    return app


app = create_app()


def run():
    import uvicorn
    configure_logging(default_settings.log_level)
    uvicorn.run(app, host=default_settings.host, port=default_settings.port, log_level=default_settings.log_level.lower())


if __name__ == "__main__":
    run()
