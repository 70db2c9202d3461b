"""Feyxa Commerce FastAPI application.

Web server that processes commands synchronously via HTTP. Endpoints are
plain functions run on the FastAPI threadpool; each one pushes the commerce
domain context on the thread that runs it.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the configuration overlay from domain.toml.
from commerce.domain import commerce  # noqa: E402
from commerce.utils.logging import configure_logging  # noqa: E402
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

configure_logging()
commerce.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Feyxa Commerce API",
    description="Multi-vendor checkout, order tracking, escrow and event processing",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from commerce.api import register_error_handlers, routers  # noqa: E402

register_error_handlers(app)
for router in routers:
    app.include_router(router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": commerce.name})
