from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from pathlib import Path
import logging

from app.core.config import settings
from app.core.firebase_init import get_firebase_status, is_firebase_available, is_storage_available

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Firebase and Storage come up here; without them the API still starts and /health says so
logger.info("🔥 Connecting to Firebase...")
startup_status = get_firebase_status()
if not startup_status['storage']['available']:
    logger.warning(f"⚠️ Running without Firebase storage: {startup_status['storage']['error']}")

app = FastAPI(
    title=settings.APP_NAME,
    description="Festival media sharing: code-gated galleries, uploads, downloads and messaging",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def safe_include_router(router_module_path: str, router_name: str = "router"):
    """Safely include a router with error handling"""
    try:
        module = __import__(router_module_path, fromlist=[router_name])
        router = getattr(module, router_name)
        app.include_router(router)
        logger.info(f"✅ Successfully included {router_module_path}")
        return True
    except Exception as e:
        logger.exception(f"❌ Failed to include {router_module_path}: {str(e)}")
        return False

logger.info("Loading routers...")

routers_to_load = [
    ("app.routers.access", "Access Codes"),
    ("app.routers.festivals", "Festivals"),
    ("app.routers.posts", "Posts"),
    ("app.routers.downloads", "Downloads"),
    ("app.routers.profiles", "Profiles"),
    ("app.routers.discover", "Discover"),
    ("app.routers.chat", "Chat"),
]

successful_routers = []
failed_routers = []

for router_path, router_description in routers_to_load:
    if safe_include_router(router_path):
        successful_routers.append(router_description)
    else:
        failed_routers.append(router_description)

logger.info(f"Successfully loaded routers: {successful_routers}")
if failed_routers:
    logger.warning(f"Failed to load routers: {failed_routers}")

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "firebase_available": is_firebase_available(),
        "storage_available": is_storage_available(),
        "loaded_routers": len(successful_routers),
        "failed_routers": len(failed_routers)
    }


# ---------- Single-page client ----------
spa_dir = Path(settings.SPA_DIST_DIR) if settings.SPA_DIST_DIR else None

if spa_dir and (spa_dir / "index.html").is_file():
    logger.info(f"📦 Serving client from {spa_dir}")
    if (spa_dir / "assets").is_dir():
        app.mount("/assets", StaticFiles(directory=spa_dir / "assets"), name="assets")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_spa(full_path: str):
        """Real files are served as-is; any other path falls back to index.html."""
        candidate = (spa_dir / full_path).resolve()
        if full_path and candidate.is_file() and spa_dir.resolve() in candidate.parents:
            return FileResponse(candidate)
        return FileResponse(spa_dir / "index.html")
else:
    @app.get("/")
    async def root():
        return {
            "message": f"Welcome to the {settings.APP_NAME}",
            "firebase": get_firebase_status(),
            "loaded_routers": successful_routers,
            "failed_routers": failed_routers
        }
