"""FastAPI application storing flows and relaying live node states."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smflow_server import flow_db
from smflow_server.db import init_all
from smflow_server.flow_routes import router as flow_router
from smflow_server.realtime import hub
from smflow_server.realtime import router as realtime_router
from smflow_server.realtime import ws_router

from dotenv import load_dotenv
load_dotenv()  # load environment variables from .env file

# CORS origins - configurable via environment variable
# Use comma-separated values for multiple origins, or "*" for all (development only)
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database tables on startup."""
    init_all()
    yield


app = FastAPI(
    title="smflow API",
    description="API server for state-machine flows and live node states",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routes
app.include_router(flow_router, prefix="/api")
app.include_router(realtime_router, prefix="/api")
app.include_router(ws_router)


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "0.1.0",
        "db": str(flow_db.DB_PATH),
        "monitors": len(hub),
        "endpoints": {
            "flows": "/api/flow",
            "node_states": "/api/node-states",
            "realtime": "/ws",
        },
    }


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8080)
