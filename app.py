"""
Storefront Core - Unified Application Entry Point
Mounts the tenant-scoped services under a single FastAPI application
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.parse_jobs import app as parse_module
from shared.utils import config, setup_logging

logger = setup_logging("storefront-core")

parse_app = parse_module.app

TENANT_PREFIX = "/api/tenant"


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Shutting down parse job managers")
    await parse_module.registry.close()


app = FastAPI(
    title="Storefront Core API",
    description="""
    Tenant-scoped item parsing for the social-commerce dashboard.

    Parse routes take the tenant from the X-Tenant-ID header.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Health",
            "description": "Service health and status endpoints",
        },
        {
            "name": "Parsing",
            "description": "Item extraction and parse jobs - mounted at /api/tenant",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes to exclude (internal FastAPI docs routes)
EXCLUDED_PATHS = {"/openapi.json", "/docs", "/docs/oauth2-redirect", "/redoc"}

# Include Parse routes with prefix
for route in parse_app.routes:
    if hasattr(route, "path") and hasattr(route, "endpoint"):
        if route.path in EXCLUDED_PATHS:
            continue
        route_kwargs = {
            "path": f"{TENANT_PREFIX}{route.path}",
            "endpoint": route.endpoint,
            "methods": route.methods,
            "tags": ["Parsing"],
        }
        if hasattr(route, "name"):
            route_kwargs["name"] = f"parse_{route.name}"
        if hasattr(route, "response_model"):
            route_kwargs["response_model"] = route.response_model
        app.add_api_route(**route_kwargs)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with service information and API navigation"""
    return {
        "service": "Storefront Core API",
        "version": "1.0.0",
        "services": {
            "parse": {
                "base_url": TENANT_PREFIX,
                "text": f"{TENANT_PREFIX}/{{industry}}/parse",
                "file": f"{TENANT_PREFIX}/{{industry}}/parse/file",
                "image": f"{TENANT_PREFIX}/{{industry}}/parse/image",
                "jobs": f"{TENANT_PREFIX}/{{industry}}/parse/jobs/{{job_id}}",
                "health": f"{TENANT_PREFIX}/health",
            },
        },
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_json": "/openapi.json",
        },
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for all services"""
    return {
        "status": "healthy",
        "services": {
            "api_gateway": "operational",
            "parse": "operational",
            "job_store": config.get("job_store_backend", "memory"),
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Storefront Core on http://0.0.0.0:8000")
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
