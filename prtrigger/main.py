"""
FastAPI application entry point.
"""

from fastapi import FastAPI

from prtrigger.api import jobs
from prtrigger.config import settings
from prtrigger.utils.logging import setup_logging, get_logger

# Configure structured logging
setup_logging(settings.log_level)

logger = get_logger(__name__)

app = FastAPI(
    title="Pull Request Build Trigger",
    description="Authorizes pull request events and dispatches builds",
    version="0.1.0"
)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "version": "0.1.0"}


app.include_router(jobs.router)


@app.on_event("startup")
async def startup_event():
    """Load saved trigger state on application startup."""
    logger.info("Starting pull request build trigger")
    
    from prtrigger.services.trigger_service import get_trigger_service
    await get_trigger_service().initialize()
    logger.info("Trigger service initialized")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop triggers and save state on application shutdown."""
    logger.info("Shutting down pull request build trigger")
    
    from prtrigger.services.trigger_service import get_trigger_service
    await get_trigger_service().close()
    logger.info("Trigger service closed")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
