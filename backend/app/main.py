"""
Patient Health Summary Service
Clinical aggregation, risk scoring and medication safety over patient records.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .core.config import settings
from .core.access_log import AccessLogMiddleware
from .models.base import Base, engine
from .models import patient, records  # noqa: F401 - register tables
from .api import health_summary, patient_search
from .api.errors import register_error_handlers
from .seed_demo import seed_demo_data

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create all database tables
# NOTE: In production, use migrations instead of create_all()
Base.metadata.create_all(bind=engine)

# Seed a demo patient with sub-records (idempotent)
if settings.SEED_DEMO_DATA:
    seed_demo_data()

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Read-time synthesis of a patient's allergies, medications, history, contacts, "
        "insurance and appointments into summaries, risk assessments, safety alerts, "
        "dashboards, care plans, timelines and medication-safety checks."
    ),
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # TODO: Restrict to specific origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(AccessLogMiddleware)

register_error_handlers(app)

app.include_router(health_summary.router, prefix="/api/v1")
app.include_router(patient_search.router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}
