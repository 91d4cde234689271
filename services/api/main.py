"""
Submittal Packet Service - Backend API
FastAPI with two document stores: Supabase (hosted) and local JSON files

Install dependencies:
pip install -e .

Run server:
uvicorn main:app --host 0.0.0.0 --port 8000
"""

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import asyncio
import contextvars
import logging
import os
import time
import uuid

from settings import get_settings

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)
request_start_time_var = contextvars.ContextVar('request_start_time', default=None)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# BACKEND CONFIGURATION
# ============================================================================
settings = get_settings()

STORAGE_BACKEND = settings.storage_backend.lower()

logger.info(f"🔧 Storage Backend: {STORAGE_BACKEND.upper()}")

# ============================================================================
# STORAGE ADAPTER INITIALIZATION
# ============================================================================

def create_storage_adapter(backend: str):
    if backend == "supabase":
        from adapters.supabase import SupabaseAdapter

        logger.info("Initializing Supabase adapter...")
        adapter = SupabaseAdapter(
            url=settings.supabase_url,
            key=settings.supabase_key,
            bucket=settings.supabase_bucket,
            table=settings.supabase_table,
            signed_url_expires_in=settings.signed_url_expires_in,
            timeout=settings.fetch_timeout_seconds,
        )
        logger.info(f"✓ Supabase adapter initialized (bucket '{settings.supabase_bucket}')")
        return adapter

    if backend == "json":
        from adapters.json import JsonAdapter

        adapter = JsonAdapter(data_dir=settings.json_data_dir)
        logger.info(f"✓ JSON adapter initialized ({settings.json_data_dir})")
        return adapter

    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")


try:
    storage_adapter = create_storage_adapter(STORAGE_BACKEND)
except Exception as e:
    logger.error(f"✗ Failed to initialize storage: {e}")
    raise

# ============================================================================
# FASTAPI APP
# ============================================================================

app = FastAPI(
    title="Submittal Packet API",
    description="Manage product PDF documents and build submittal packets",
    version="1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.state.storage_backend = STORAGE_BACKEND
app.state.storage_adapter = storage_adapter

# ========== Request Tracing Middleware ==========
@app.middleware("http")
async def request_tracing_middleware(request, call_next):
    """Add request_id and timing to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    request_start_time_var.set(time.time())

    response = await call_next(request)

    latency = time.time() - request_start_time_var.get()

    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({round(latency * 1000, 2)} ms) [{request_id}]"
    )

    response.headers["X-Request-ID"] = request_id
    return response

ALLOWED_ORIGINS = settings.get_origins_list()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Packet-Pages", "X-Packet-Failed-Documents"],
)

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

# ============================================================================
# ENDPOINTS
# ============================================================================
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        storage_adapter.ping()
        return {
            "status": "healthy",
            "backend": STORAGE_BACKEND,
            "version": "1.0"
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "backend": STORAGE_BACKEND, "error": str(e)}
        )


@app.get("/healthz")
async def healthz():
    """
    Kubernetes-style liveness probe.
    Returns 200 if the application is running.
    """
    return {
        "status": "ok",
        "timestamp": time.time(),
        "version": "1.0"
    }


@app.get("/readyz")
async def readyz():
    """
    Kubernetes-style readiness probe.
    Checks if the document store is reachable. Returns 200 if ready, 503 if not.
    """
    try:
        storage_adapter.ping()
        return {
            "status": "ready",
            "backend": STORAGE_BACKEND,
            "timestamp": time.time()
        }
    except Exception as e:
        logger.error(f"Readiness check failed: {str(e)}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "backend": STORAGE_BACKEND,
                "error": str(e),
                "timestamp": time.time()
            }
        )


@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "message": "Submittal Packet API",
        "version": "1.0",
        "backend": STORAGE_BACKEND,
        "status": "running",
        "docs": "/docs"
    }


from routers import documents as documents_router
app.include_router(documents_router.router)

from routers import packets as packets_router
app.include_router(packets_router.router)


@app.on_event("startup")
async def startup_event():
    app.state.packet_semaphore = asyncio.Semaphore(max(1, settings.max_parallel_packets))
    logger.info("Submittal Packet API starting up...")
    logger.info(f"Storage Backend: {STORAGE_BACKEND.upper()}")
    logger.info(f"Max parallel packet builds: {settings.max_parallel_packets}")
    logger.info(f"Allowed origins: {ALLOWED_ORIGINS}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Submittal Packet API shutting down...")
    if hasattr(storage_adapter, "close"):
        storage_adapter.close()

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
