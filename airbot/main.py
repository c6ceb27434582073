"""FastAPI application for webhook delivery mode."""

from fastapi import FastAPI

from .api import router as api_router

app = FastAPI(title="AirBot")

# API routes
app.include_router(api_router, prefix="/v1")
