"""
Dress Rental — FastAPI ASGI Entry Point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dress_rental.api.v1.endpoints.scanner import router as ws_scanner_router
from dress_rental.api.v1.router import api_router
from dress_rental.clients.supabase import SupabaseClient
from dress_rental.config import get_settings
from dress_rental.core.logging_config import configure_logging

settings = get_settings()
configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — backend client pool."""
    app.state.supabase = SupabaseClient(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        timeout=settings.SUPABASE_TIMEOUT_SECONDS,
    )
    yield
    await app.state.supabase.aclose()


app = FastAPI(
    title="Dress Rental",
    description="Order fulfillment and QR scan-to-assign for a dress rental business",
    version="0.1.0",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
    openapi_url="/api/v1/openapi.json",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")

# WebSocket scanner (outside /api/v1 — WS doesn't use HTTP middleware)
app.include_router(ws_scanner_router)


@app.get("/health")
async def health():
    """Health check for load balancers and Docker."""
    return {"status": "ok", "service": "dress-rental"}
