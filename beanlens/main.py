from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from .core.config import settings

# Set up logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

app = FastAPI(
    title=settings.APP_NAME,
    description="API for BeanLens - Spring bean definition and injection point navigation",
    version="0.1.0",
    debug=settings.DEBUG,
)

# CORS middleware configuration - MUST come before router inclusion
origins = list(settings.ALLOW_ORIGINS)

# Add any additional origins from environment variable
if os.getenv("EXTRA_ORIGINS"):
    origins.extend(os.getenv("EXTRA_ORIGINS").split(","))

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def read_root():
    return {"message": f"Welcome to {settings.APP_NAME}", "workspace": settings.WORKSPACE_ROOT}

@app.get("/.health")
async def health_check():
    return {"status": "healthy"}

# Include routers - AFTER middleware setup
from .routers import analysis
app.include_router(analysis.router)

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("beanlens.main:app", host="0.0.0.0", port=port, reload=True)
