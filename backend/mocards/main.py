"""MOCARDS - Dental Loyalty Card API."""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mocards.config import get_settings
from mocards.errors import register_exception_handlers

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: Create tables and load perk templates
    from mocards.database import Base, engine, get_db_context
    from mocards.services.perk_templates import load_perk_templates

    # Import all models so they're registered with Base
    from mocards import models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    with get_db_context() as db:
        load_perk_templates(db)

    yield


app = FastAPI(
    title=settings.app_name,
    description="Loyalty cards for dental clinics: generation, activation and perk redemption",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


# Import and include routers
from mocards.api import auth, batches, cards, perks  # noqa: E402

app.include_router(auth.router, prefix="/api")
app.include_router(batches.router, prefix="/api")
app.include_router(cards.router, prefix="/api")
app.include_router(perks.router, prefix="/api")
