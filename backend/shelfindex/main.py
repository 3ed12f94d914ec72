from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shelfindex.db.config import settings

# ============================================================
# 🪵 Logging Setup
# ============================================================
logging.basicConfig(
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger("shelf.app")

# ============================================================
# 📦 Core Imports (DB + Dependency Injection)
# ============================================================
from shelfindex.db.session import DatabasePool, ping_db
from shelfindex.container import build_container

# ============================================================
# 🌐 Routers
# ============================================================
from shelfindex.router.health import router as health_router
from shelfindex.router.index_router import router as index_router
from shelfindex.router.upload_router import router as upload_router
from shelfindex.router.documents import router as documents_router


# ============================================================
# 🚀 Startup / Shutdown Lifecycle
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the pool, wire the services and optionally start the scan scheduler."""
    logger.info("🚀 Initializing library indexing service...")
    pool = None
    if settings.store_backend.strip().lower() != "memory":
        logger.info("Database: %s", settings.masked_database_url())
        pool = DatabasePool.init()
        ok, msg = ping_db()
        if ok:
            logger.info("✅ Database OK: %s", msg)
        else:
            logger.warning("⚠️ DB ping failed: %s", msg)

    try:
        app.state.container = build_container(settings, pool=pool)
    except Exception as e:
        logger.error("❌ Container init failed: %s", e, exc_info=True)
        DatabasePool.close()
        raise

    if settings.scheduler_autostart:
        app.state.container.scheduler.ensure_started()
    logger.info("🎯 API is ready and accepting requests")

    try:
        yield
    finally:
        app.state.container.scheduler.stop()
        app.state.container = None
        DatabasePool.close()
        logger.info("🧹 Application shutdown complete")


# ============================================================
# 🌍 FastAPI App Definition
# ============================================================
app = FastAPI(
    title="Library Indexing API",
    description="Scans a document library, converts files to markdown and stores embedded chunks in pgvector",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(index_router)
app.include_router(upload_router)
app.include_router(documents_router)


@app.get("/")
def root():
    return {
        "app": "Library Indexing API",
        "version": "1.0.0",
        "library_dir": settings.library_dir,
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "scan": "/index/scan",
            "status": "/index/status",
            "upload": "/upload",
            "documents": "/documents",
        },
    }


# ============================================================
# 🏁 Entrypoint
# ============================================================
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Library Indexing API on port 8080...")
    uvicorn.run(
        "shelfindex.main:app",
        host="0.0.0.0",
        port=8080,
        reload=False,
        log_config=None,
    )
