import logging
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from medicore.core.errors import register_exception_handlers
from medicore.core.settings import settings, validate_settings
from medicore.db.session import SessionLocal, engine
from medicore.models import Base
from medicore.routers.appointments import router as appointments_router
from medicore.routers.dashboard import router as dashboard_router
from medicore.routers.invoices import router as invoices_router
from medicore.routers.medical_records import router as medical_records_router
from medicore.routers.patients import router as patients_router
from medicore.routers.reports import router as reports_router
from medicore.routers.users import router as users_router
from medicore.services.users import seed_initial_admin

app = FastAPI(title="MediCore API", version="0.1.0")
logger = logging.getLogger("medicore.startup")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)


@app.on_event("startup")
def startup():
    validate_settings(settings)
    Base.metadata.create_all(bind=engine)

    admin_email = str(settings.admin_email)
    db: Session = SessionLocal()
    try:
        created = seed_initial_admin(db, email=admin_email, name=settings.admin_name)
        if created:
            logger.info("Initial admin created for %s.", admin_email)
        else:
            logger.info("Initial admin not created (users already exist).")
    finally:
        db.close()


api = APIRouter(prefix="/api")


@api.get("/health")
def health():
    return {
        "success": True,
        "message": "MediCore API is running",
        "environment": settings.app_env,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


api.include_router(users_router)
api.include_router(patients_router)
api.include_router(appointments_router)
api.include_router(invoices_router)
api.include_router(medical_records_router)
api.include_router(dashboard_router)
api.include_router(reports_router)
app.include_router(api)
