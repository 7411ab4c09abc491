from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from dotenv import load_dotenv

from jobapply.core.config import settings, validate_settings

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuse to serve without the Stripe secret
    validate_settings()
    if not settings.stripe_webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET not set: webhook signatures will not be verified")
    yield

app = FastAPI(
    title="JobApply API",
    description="Credit ledger and subscription billing for JobApply",
    version="1.0.0",
    redirect_slashes=False,
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "development" else [settings.frontend_url],
    allow_credentials=False if settings.environment == "development" else True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Health check endpoint
@app.get("/health")
async def health_check():
    return JSONResponse(content={
        "status": "healthy",
        "service": "JobApply API",
        "version": "1.0.0"
    })

# Include routers
from jobapply.routers import plans, payments, promo_codes, subscriptions, resources, applications

app.include_router(plans.router, prefix="/api")
app.include_router(payments.router, prefix="/api")
app.include_router(promo_codes.router, prefix="/api")
app.include_router(subscriptions.router, prefix="/api")
app.include_router(resources.router, prefix="/api")
app.include_router(applications.router, prefix="/api")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
