"""
Pige CRM - API Backend

Démarre avec:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

from fastapi import FastAPI, APIRouter
from starlette.middleware.cors import CORSMiddleware
import logging

from config import client, CORS_ORIGINS, PIGE_RESULTS_PATH, now_iso
from scheduler_service import task_scheduler
from services.pige_coordinator import reset_coordinators
from services.pige_results_store import results_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("pige_crm")


# ==================== CORS ====================

class PublicPathCORSMiddleware:
    """
    CORS restreint aux origines configurées (CORS_ORIGINS), sauf sur les
    chemins publics (callback n8n) qui répondent toujours avec l'origine "*",
    pré-vol compris.
    """

    def __init__(self, app, public_paths, **cors_options):
        self.public_paths = tuple(public_paths)
        self.restricted = CORSMiddleware(app, **cors_options)
        self.public = CORSMiddleware(
            app,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["path"].startswith(self.public_paths):
            await self.public(scope, receive, send)
            return
        await self.restricted(scope, receive, send)


# Create the main app without a prefix
app = FastAPI(
    title="Pige CRM",
    description="Pige immobilière assistée (recherche asynchrone n8n)",
    version="1.0.0"
)

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")


@api_router.get("/")
async def root():
    return {"message": "Pige CRM API", "docs": "/docs"}


@api_router.get("/health")
async def health():
    return {
        "status": "running",
        "timestamp": now_iso(),
        "scheduler_running": task_scheduler.running,
        "pige_results_stored": len(results_store),
    }


# ==================== IMPORT DES ROUTES ====================

from routes import pige, pige_results, n8n_proxy, settings

api_router.include_router(pige.router)
api_router.include_router(pige_results.router)
api_router.include_router(settings.router)

app.include_router(api_router)

# Proxy same-origin hors /api (comme le front l'appelle)
app.include_router(n8n_proxy.router)

# Le callback n8n reste ouvert à toute origine, le reste suit CORS_ORIGINS
app.add_middleware(
    PublicPathCORSMiddleware,
    public_paths=[PIGE_RESULTS_PATH],
    allow_credentials=False,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== STARTUP / SHUTDOWN ====================

@app.on_event("startup")
async def startup():
    task_scheduler.start()
    logger.info("🚀 Pige CRM démarré")


@app.on_event("shutdown")
async def shutdown():
    reset_coordinators()
    task_scheduler.stop()
    client.close()
    logger.info("Pige CRM arrêté")
