
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from . import config
from .logging_config import configure_logging, set_request_id
from .models import ErrorResponse, StatusResponse, SubmitRequest
from .service import CanaryService, SubmissionOutcome, build_service


def create_app(service: Optional[CanaryService] = None) -> FastAPI:
    """Build the canary server. Without a service, one is built from configuration at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "service", None) is None:
            level = "DEBUG" if config.is_debug() else config.LOG_LEVEL
            configure_logging(level, config.LOG_JSON, config.LOG_FILE or None)
            app.state.service = build_service()
        yield

    app = FastAPI(title="Warrant Canary Server", lifespan=lifespan)
    app.state.service = service

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        rid = set_request_id(request.headers.get("X-Request-ID"))
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response

    def svc(request: Request) -> CanaryService:
        return request.app.state.service

    # Serves the public key
    @app.get("/key")
    def get_key(request: Request):
        armor = svc(request).key_armor
        if not armor:
            return Response(status_code=204)
        return PlainTextResponse(armor)

    # Returns canary status on this node
    @app.get("/status", response_model=StatusResponse)
    def status(request: Request):
        return svc(request).status()

    # Serves the latest published canary, byte for byte
    @app.get("/latest")
    def latest(request: Request):
        tip = svc(request).latest()
        if tip is None:
            return Response(status_code=204)
        return Response(content=tip.document.encode("utf-8"), media_type="text/plain; charset=utf-8")

    # Add a new canary
    @app.post("/submit", status_code=204)
    def submit(req: SubmitRequest, request: Request):
        result = svc(request).submit(req.proof)
        if result.is_accepted():
            return Response(status_code=204)
        code = 500 if result.outcome == SubmissionOutcome.PERSIST_FAILED else 400
        body = ErrorResponse(reason=result.reason, message=result.message, details=result.details)
        return JSONResponse(status_code=code, content=body.model_dump(exclude_none=True))

    return app


app = create_app()


def run():
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
