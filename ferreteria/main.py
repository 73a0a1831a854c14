from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import logging

# Import database components
from ferreteria.database.database import engine, Base

# Import middleware
from ferreteria.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

# Import routers
from ferreteria.modules.inventory.router import inventory_router
from ferreteria.modules.customers.router import customers_router
from ferreteria.modules.suppliers.router import suppliers_router
from ferreteria.modules.sales.router import sales_router
from ferreteria.modules.sales.exceptions import SaleError

# Import models for table creation
import ferreteria.modules.auth.models
import ferreteria.modules.inventory.models
import ferreteria.modules.customers.models
import ferreteria.modules.suppliers.models
import ferreteria.modules.sales.models
import ferreteria.modules.audit.models

from ferreteria.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Ferretería API",
    description="Inventario, clientes y ventas transaccionales para ferreterías, con FastAPI y PostgreSQL",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SaleError)
async def sale_error_handler(request: Request, exc: SaleError):
    """Traducir los errores del motor de ventas a respuestas JSON con código de error."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(inventory_router, prefix="/api/v1")
app.include_router(customers_router, prefix="/api/v1")
app.include_router(suppliers_router, prefix="/api/v1")
app.include_router(sales_router, prefix="/api/v1")


@app.get("/")
async def read_root():
    return {
        "message": "Ferretería API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Ferretería API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # Create database tables (only for development - use migrations in production)
    if settings.ENVIRONMENT == "development":
        Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Ferretería API shutting down...")
