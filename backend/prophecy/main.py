from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from contextlib import asynccontextmanager
from prophecy.core.config import settings
from prophecy.core.logging import setup_logging
from prophecy.core.exceptions import (
    ProphecyException, prophecy_exception_handler,
    sqlalchemy_exception_handler, general_exception_handler
)
from prophecy.db.init_db import init_db
from prophecy.db.session import SessionLocal
from prophecy.services.analytics.prophecy_engine import build_prophecy_engine
from prophecy.api.v1.api import api_router

# Set up logging
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Startup
    init_db()
    app.state.prophecy_engine = build_prophecy_engine(SessionLocal)

    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Predictive analytics for short-form clip performance",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)

# Exception handlers
app.add_exception_handler(ProphecyException, prophecy_exception_handler)
app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
