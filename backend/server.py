from fastapi import FastAPI, APIRouter
from starlette.middleware.cors import CORSMiddleware
import logging

from config import get_settings
from database import engine, Base
import models  # noqa: F401  (registers tables on Base.metadata)
from routers.public import router as public_router
from routers.registration import router as registration_router
from routers.admin import router as admin_router

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title="Brahmaputra Karate League Registration API", version="1.0.0")
api_router = APIRouter(prefix="/api")


# ==================== STARTUP ====================
@app.on_event("startup")
def startup_event():
    Base.metadata.create_all(bind=engine)
    logger.info("Registration tables ready")


api_router.include_router(public_router)
api_router.include_router(registration_router)
api_router.include_router(admin_router)

# Include router and add middleware
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
