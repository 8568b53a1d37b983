#!/usr/bin/env python3
"""
Main FastAPI application for the bakery ordering and inventory backend.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import Config
from .errors import register_exception_handlers
from .routes import admin, agents, auth, delivery, health, orders, products, storefront, suppliers
from ..data.database import create_tables
from ..utils.logger import get_logger, log_api_request

logger = get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables()
    logger.info(f"Bakery ops API {Config.APP_VERSION} started ({Config.ENVIRONMENT})")
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Bakery Ops API",
    description="Multi-tenant bakery ordering, inventory and delivery backend with role-based agents",
    version=Config.APP_VERSION,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    log_api_request(request.method, request.url.path, response.status_code, (time.time() - start) * 1000)
    return response


for module in (health, auth, products, orders, suppliers, delivery, storefront, admin, agents):
    app.include_router(module.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
