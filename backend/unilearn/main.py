"""UniLearn — FastAPI Application Entry Point."""

import logging
from pathlib import Path

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from unilearn.config import settings
from unilearn.database import init_db
from unilearn.dependencies import get_ai_provider
from unilearn.middleware.rate_limit import limiter
from unilearn.routers import analytics, assignments, auth, chat, courses, documents, recommendations
from unilearn.services.ai_client import AIProvider, build_ai_provider

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ── CORS origins from env (supports dev localhost + production domain) ──────
_cors_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app = FastAPI(
    title="UniLearn",
    description="University learning management with course-document AI tutoring.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(documents.router)
app.include_router(assignments.router)
app.include_router(chat.router)
app.include_router(recommendations.router)
app.include_router(analytics.router)


@app.on_event("startup")
async def on_startup():
    """Create tables and the upload directory, build the AI provider, log it."""
    init_db()
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)

    app.state.ai_provider = build_ai_provider(settings)
    provider = app.state.ai_provider.provider_name()
    if provider == "none":
        print("\n" + "="*60)
        print("  ⚠  AI NOT CONFIGURED — local fallbacks active")
        print("  Configure one of these in backend/.env:")
        print("    ORACLE_GENAI_COMPARTMENT_ID=ocid1.compartment... (+ ~/.oci/config)")
        print("    ANTHROPIC_API_KEY=sk-ant-...")
        print("  and restart. Visit /api/health/ai to verify.")
        print("="*60 + "\n")
    else:
        print(f"\n  ✓  AI provider: {provider}\n")
    if app.state.ai_provider.embedding_client is None:
        logging.getLogger(__name__).info("No embedding service configured; using local embeddings")


@app.get("/")
def root(provider: AIProvider = Depends(get_ai_provider)):
    return {
        "name": "UniLearn API",
        "version": "1.0.0",
        "docs": "/docs",
        "ai_provider": provider.provider_name(),
    }


@app.get("/health")
def health(provider: AIProvider = Depends(get_ai_provider)):
    return {"status": "ok", "ai_provider": provider.provider_name()}


@app.get("/api/health/ai")
async def health_ai(provider: AIProvider = Depends(get_ai_provider)):
    """Live connectivity test for the configured AI provider.

    Returns:
        provider: which AI is active
        status:   "ok" | "error" | "unconfigured"
        test_reply / error: result of a tiny test call
    """
    return await provider.health_check()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
