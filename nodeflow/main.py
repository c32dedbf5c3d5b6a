from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from nodeflow import __version__, config
from nodeflow.api.routes import router

# Configure logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Nodeflow API",
    description="Runs user-authored node workflows and streams their progress",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Nodeflow API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "list_workflows": "GET /api/v1/workflows",
            "create_workflow": "POST /api/v1/workflows",
            "get_workflow": "GET /api/v1/workflows/{workflow_id}",
            "update_workflow": "PUT /api/v1/workflows/{workflow_id}",
            "delete_workflow": "DELETE /api/v1/workflows/{workflow_id}",
            "run_workflow": "POST /api/v1/workflows/{workflow_id}/run",
            "get_run": "GET /api/v1/runs/{run_id}",
            "websocket_logs": "WS /api/v1/ws/runs/{run_id}",
            "list_handlers": "GET /api/v1/handlers",
            "stats": "GET /api/v1/stats"
        }
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


def run() -> None:
    import uvicorn
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)


if __name__ == "__main__":
    run()
