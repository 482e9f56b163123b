from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from database.mongodb import db, ensure_indexes
from config import get_settings
from routes import invoices, expenses
import logging

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to MongoDB and make sure the invoice/expense indexes exist"""
    await db.connect(settings.mongo_url, settings.db_name)
    await ensure_indexes(db.get_db())
    logger.info(f"Barbershop backend started ({settings.environment})")
    yield
    await db.disconnect()
    logger.info("Barbershop backend stopped")

app = FastAPI(
    title="Barbershop API",
    description="Invoicing and recurring expenses for the barbershop",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(invoices.router)
app.include_router(expenses.router)

@app.get("/")
async def root():
    return {
        "message": "Barbershop API",
        "version": "1.0.0",
        "status": "running"
    }

@app.get("/api")
async def api_root():
    return {
        "message": "Barbershop API",
        "endpoints": {
            "invoices": "/api/invoices",
            "expenses": "/api/expenses/recurring"
        }
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.environment}
