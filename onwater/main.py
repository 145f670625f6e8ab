import json

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import PlainTextResponse
from opentelemetry.sdk.trace import TracerProvider

from .config import Settings, configure_logging
from .context import current_logger, get_logger
from .land import LandIndex, classify_many, is_on_water, load_land_index
from .middleware import RequestContextMiddleware, SecurityHeadersMiddleware
from .schemas import ClassificationResult
from .telemetry import CLASSIFY_SPAN, build_tracer_provider, get_tracer
from .validation import is_coordinate, to_coordinate

QUERY_ERROR = (
    "'lat' and 'lon' query parameters required representing a valid lat/lon (-180 < lat/lon < 180)"
)
BODY_NOT_ARRAY_ERROR = "body must be an array of coordinates"
BODY_ITEM_ERROR = (
    "body must be an array of objects containing keys 'lat' and 'lon' "
    "representing a valid lat/lon (-180 < lat/lon < 180)"
)

logger = get_logger()


def get_land_index(request: Request) -> LandIndex:
    index = request.app.state.land_index
    if index is None:
        raise RuntimeError("land index is not loaded")
    return index


def create_app(
    settings: Settings | None = None,
    tracer_provider: TracerProvider | None = None,
    land_index: LandIndex | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    tracer_provider = tracer_provider or build_tracer_provider(settings)
    tracer = get_tracer(tracer_provider)

    app = FastAPI(title="On-Water API", version="1.0.0")
    app.state.settings = settings
    app.state.tracer = tracer
    app.state.land_index = land_index

    # Last added runs first: request context wraps everything else.
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    @app.on_event("startup")
    def startup_event():
        if app.state.land_index is not None:
            return
        try:
            app.state.land_index = load_land_index(settings.land_dataset_path)
        except Exception:
            logger.exception("Failed to load land dataset at startup.")
            raise

    @app.on_event("shutdown")
    def shutdown_event():
        app.state.land_index = None
        logger.info("Land index released.")

    @app.get(settings.health_check_endpoint, include_in_schema=False)
    def health():
        return Response(status_code=200)

    @app.get("/", response_model=ClassificationResult)
    async def classify_point(request: Request):
        if not is_coordinate(request.query_params):
            return PlainTextResponse(QUERY_ERROR, status_code=400)
        coordinate = to_coordinate(request.query_params)
        index = get_land_index(request)

        with tracer.start_as_current_span(CLASSIFY_SPAN) as span:
            span.set_attribute("count", 1)
            result = is_on_water(index, coordinate)
        current_logger().debug("Classified point", fields={"water": result.water})
        return result

    @app.post("/", response_model=list[ClassificationResult])
    async def classify_points(request: Request):
        try:
            body = json.loads(await request.body())
        except ValueError:
            body = None
        if not isinstance(body, list):
            return PlainTextResponse(BODY_NOT_ARRAY_ERROR, status_code=400)
        if not all(is_coordinate(item) for item in body):
            return PlainTextResponse(BODY_ITEM_ERROR, status_code=400)
        coordinates = [to_coordinate(item) for item in body]
        index = get_land_index(request)

        with tracer.start_as_current_span(CLASSIFY_SPAN) as span:
            span.set_attribute("count", len(coordinates))
            results = classify_many(index, coordinates)
        current_logger().debug("Classified batch", fields={"count": len(results)})
        return results

    return app


def build_app() -> FastAPI:
    """Application factory for ``uvicorn --factory onwater.main:build_app``."""
    settings = Settings.from_env()
    configure_logging(settings)
    return create_app(settings)
