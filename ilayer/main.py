from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import health, rfq
from .config import settings
from .logging_config import setup_logging
from .node import get_node
from .node import router as node_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    node = get_node()
    await node.start()
    try:
        yield
    finally:
        await node.stop()


# Create FastAPI app
app = FastAPI(
    title="iLayer RFQ Node",
    description="Request-for-quote requester and solver over Waku",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(rfq.router, tags=["RFQ"])
app.include_router(node_router.router)


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    node = get_node()
    return {
        "name": "iLayer RFQ Node",
        "version": "0.1.0",
        "role": node.role,
        "transport": node.transport,
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ilayer.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
