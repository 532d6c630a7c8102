from contextlib import asynccontextmanager

from azure.cosmos import exceptions as cosmos_exceptions
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse, JSONResponse

from catalog_api import config
from catalog_api.db import close_client, ensure_containers
from catalog_api.exceptions import ApplicationError, VersionConflictError
from catalog_api.logging_config import logger, tracer
from catalog_api.routes.access_route import router as access_router
from catalog_api.routes.admin_route import router as admin_router
from catalog_api.routes.auth_route import router as auth_router
from catalog_api.routes.discussion_route import router as discussion_router
from catalog_api.routes.health_route import router as health_router
from catalog_api.routes.home_route import router as home_router
from catalog_api.routes.inventory_route import router as inventory_router
from catalog_api.routes.inventory_schema_route import router as inventory_schema_router
from catalog_api.routes.item_route import router as item_router
from catalog_api.routes.like_route import router as like_router
from catalog_api.routes.search_route import router as search_router
from catalog_api.routes.support_route import router as support_router
from catalog_api.routes.user_route import router as user_router

# Order matters: /inventories/latest and /inventories/top before /inventories/{id}.
API_ROUTERS = (
    home_router,
    inventory_router,
    inventory_schema_router,
    item_router,
    access_router,
    discussion_router,
    like_router,
    auth_router,
    user_router,
    admin_router,
    search_router,
    support_router,
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if config.COSMOSDB_ENDPOINT:
        await ensure_containers()
    yield
    await close_client()


def _error_body(message: str) -> dict:
    return {"detail": message}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(VersionConflictError)
    async def handle_version_conflict(request: Request, exc: VersionConflictError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": exc.message, "current": jsonable_encoder(exc.current)},
        )

    @app.exception_handler(ApplicationError)
    async def handle_application_error(request: Request, exc: ApplicationError):
        if exc.status_code >= 500:
            logger.error(
                "Application error",
                extra={"path": request.url.path, "error_type": type(exc).__name__, "error": exc.message},
            )
            message = "Internal server error" if config.is_production() else exc.message
            return JSONResponse(status_code=exc.status_code, content=_error_body(message))
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        # malformed JSON bodies arrive here as well
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(cosmos_exceptions.CosmosHttpResponseError)
    async def handle_cosmos_http_error(
        request: Request, exc: cosmos_exceptions.CosmosHttpResponseError
    ):
        with tracer.start_as_current_span("handle_cosmos_error") as span:
            span.set_attribute("error", True)
            span.set_attribute("error.type", "cosmos_http_error")
            span.set_attribute("error.status_code", exc.status_code)

            if exc.status_code in (401, 403):
                logger.warning(
                    "Cosmos DB authentication error",
                    extra={"status_code": exc.status_code, "path": request.url.path},
                )
                return JSONResponse(
                    status_code=exc.status_code,
                    content=_error_body("Unauthorized" if exc.status_code == 401 else "Forbidden"),
                )

            logger.error(
                "Cosmos DB HTTP error",
                extra={"status_code": exc.status_code, "message": str(exc), "path": request.url.path},
            )
            message = "Internal server error" if config.is_production() else str(exc)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_body(message)
            )

    @app.exception_handler(ValueError)
    async def handle_value_error(_: Request, exc: ValueError):
        return JSONResponse(status_code=400, content=_error_body(str(exc)))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "Unhandled error",
            extra={"path": request.url.path, "error_type": type(exc).__name__},
            exc_info=exc,
        )
        message = "Internal server error" if config.is_production() else str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_body(message)
        )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Inventory Catalog API",
        version="1.0.0",
        openapi_url="/api/openapi.json",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_ORIGINS != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > config.MAX_BODY_BYTES:
            logger.warning(
                "Request body too large",
                extra={"path": request.url.path, "content_length": int(length)},
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content=_error_body("Payload too large"),
            )
        return await call_next(request)

    @app.get("/docs", include_in_schema=False)
    async def custom_swagger_ui_html() -> HTMLResponse:
        return get_swagger_ui_html(
            openapi_url=app.openapi_url,
            title=app.title + " - Swagger UI",
            swagger_js_url="https://cdnjs.cloudflare.com/ajax/libs/swagger-ui/5.17.14/swagger-ui-bundle.js",
            swagger_css_url="https://cdnjs.cloudflare.com/ajax/libs/swagger-ui/5.17.14/swagger-ui.css",
            swagger_favicon_url="https://fastapi.tiangolo.com/img/favicon.png",
        )

    register_exception_handlers(app)

    app.include_router(health_router)
    for router in API_ROUTERS:
        app.include_router(router)
        app.include_router(router, prefix="/api", include_in_schema=False)

    return app


app = create_app()
