# /main.py
import uvicorn
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from dependencies import global_rate_limiter
from ip_anonymizer import IPAnonymizerMiddleware
from logging_config import LOGGING_CONFIG
from middlewares import RateLimitMiddleware, SecurityHeadersMiddleware

logger = logging.getLogger(__name__)
# Import the individual router modules
from routers import contact, counter, subscribe

app = FastAPI(
    title="Activist Checklist API",
    description="Privacy-preserving analytics backend for the Activist Checklist website.",
    version="1.0.0"
)

# --- Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)
# Starlette runs the last added middleware first: anonymize, then add
# security headers (429s included), then apply the global limit.
app.add_middleware(RateLimitMiddleware, limiter=global_rate_limiter)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(IPAnonymizerMiddleware)

# --- API Routers ---
app.include_router(counter.router, prefix="/api-server", tags=["Analytics"])
app.include_router(subscribe.router, prefix="/api-server", tags=["Newsletter"])
app.include_router(contact.router, prefix="/api-server", tags=["Contact"])


@app.get("/api-server/hello", tags=["Health Check"])
async def hello():
    return {"message": "Hello World"}


@app.get("/", tags=["Health Check"])
async def read_root():
    return {"message": "Welcome to the Activist Checklist API"}

# --- Run Server ---
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        log_config=LOGGING_CONFIG,
    )
