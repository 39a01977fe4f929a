"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import entities, identity_maps, preview, runs

app = FastAPI(
    title="Legacy Migrator API",
    description="Operator API for running and auditing legacy store migrations",
    version="0.1.0",
)

# CORS middleware for the operator dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(entities.router, prefix="/api/entities", tags=["entities"])
app.include_router(runs.router, prefix="/api/runs", tags=["runs"])
app.include_router(identity_maps.router, prefix="/api/identity-maps", tags=["identity-maps"])
app.include_router(preview.router, prefix="/api/preview", tags=["preview"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
