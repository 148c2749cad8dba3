import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(sys.executable).resolve().parent if getattr(sys, "frozen", False) else Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env", override=True)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import app.models  # ensure models are registered
from app.core.config import CORS_ORIGINS, LOG_LEVEL
from app.utils.database import engine, Base
from app.initial_data import init_seed

from app.routers import (
    users_router,
    entries_router,
    advance_payments_router,
    previous_outstanding_router,
    transaction_logs_router,
    reports_router,
)

logging.basicConfig(
    level=LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Boli Ledger Backend API", version="1.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(users_router.router)
app.include_router(entries_router.router)
app.include_router(advance_payments_router.router)
app.include_router(previous_outstanding_router.router)
app.include_router(transaction_logs_router.router)
app.include_router(reports_router.router)


@app.on_event("startup")
def on_startup():
    # DEV ONLY: production schema is managed outside the app
    Base.metadata.create_all(bind=engine)

    print("🔄 Running initial database seeding…")
    init_seed()
    print("✅ Seeding complete.\n")


@app.get("/")
def root():
    return {"message": "Boli Ledger Backend is running!!"}
