"""
Recovery Orchestrator API

FastAPI surface over a RecoveryOrchestrator so UI collaborators can inspect
active recoveries, analytics and suggestions, and cancel or trigger recovery.
"""

import logging
import os
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
import uvicorn

from recovery import RecoveryOrchestrator, load_config
from .models import (
    AnalyticsResponse,
    CancelRecoveryResponse,
    ConfigResponse,
    ConfigUpdateRequest,
    ExecuteRecoveryRequest,
    ExecuteRecoveryResponse,
    HealthResponse,
    RecoveryContextModel,
    RecoveryListResponse,
    SuggestionsResponse
)
from .middleware import setup_middleware, setup_exception_handlers


# Global orchestrator instance
orchestrator: Optional[RecoveryOrchestrator] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    global orchestrator

    logging.info("Starting recovery API server...")

    try:
        config = load_config(os.getenv("RECOVERY_CONFIG_PATH"))
        orchestrator = RecoveryOrchestrator(config=config, enable_logging=True)
        logging.info("Recovery orchestrator initialized")
    except Exception as e:
        logging.error(f"Failed to initialize recovery orchestrator: {e}")
        # Health checks report the degraded state
        orchestrator = None

    yield

    logging.info("Shutting down recovery API server...")
    if orchestrator:
        orchestrator.shutdown()


app = FastAPI(
    title="Error Recovery Orchestrator API",
    description="Inspection and control of active error recoveries",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

setup_middleware(app)
setup_exception_handlers(app)


def _require_orchestrator() -> RecoveryOrchestrator:
    if not orchestrator:
        raise HTTPException(status_code=503, detail="Orchestrator not available")
    return orchestrator


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with service information"""
    return {
        "message": "Error Recovery Orchestrator API",
        "version": "1.0.0",
        "status": "operational",
        "timestamp": datetime.now().isoformat(),
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check with recovery statistics"""
    if not orchestrator:
        return HealthResponse(
            status="degraded",
            timestamp=datetime.now(),
            components={"orchestrator": "not_initialized"}
        )

    try:
        statistics = orchestrator.get_recovery_statistics()
    except Exception as e:
        logging.error(f"Health check failed: {e}")
        return HealthResponse(
            status="unhealthy",
            timestamp=datetime.now(),
            components={"orchestrator": "error", "error": str(e)}
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(),
        components={
            "orchestrator": "healthy",
            "active_recoveries": statistics["active_recoveries"],
            "strategies": len(orchestrator.catalog.list_strategies())
        },
        statistics=statistics
    )


@app.get("/recoveries", response_model=RecoveryListResponse, tags=["Recoveries"])
async def list_recoveries():
    """List active recovery contexts"""
    current = _require_orchestrator()
    recoveries = [r.to_dict() for r in current.get_active_recoveries().values()]

    return RecoveryListResponse(
        recoveries=recoveries,
        total=len(recoveries),
        timestamp=datetime.now()
    )


@app.get("/recoveries/{recovery_id}", response_model=RecoveryContextModel, tags=["Recoveries"])
async def get_recovery(recovery_id: str):
    """Get one active recovery context"""
    recovery = _require_orchestrator().get_recovery(recovery_id)
    if not recovery:
        raise HTTPException(status_code=404, detail="Recovery not found")
    return recovery.to_dict()


@app.post("/recoveries/{recovery_id}/execute", response_model=ExecuteRecoveryResponse, tags=["Recoveries"])
async def execute_recovery(recovery_id: str, request: Optional[ExecuteRecoveryRequest] = None):
    """Run a strategy of an active recovery"""
    current = _require_orchestrator()
    recovery = current.get_recovery(recovery_id)
    strategy_id = request.strategy_id if request else None

    success = await current.execute_recovery(recovery_id, strategy_id)

    return ExecuteRecoveryResponse(
        recovery_id=recovery_id,
        success=success,
        status=recovery.status.value if recovery else "unknown",
        timestamp=datetime.now()
    )


@app.delete("/recoveries/{recovery_id}", response_model=CancelRecoveryResponse, tags=["Recoveries"])
async def cancel_recovery(recovery_id: str):
    """Cancel a recovery; repeated calls are harmless"""
    current = _require_orchestrator()
    was_active = current.get_recovery(recovery_id) is not None
    current.cancel_recovery(recovery_id)

    return CancelRecoveryResponse(
        recovery_id=recovery_id,
        cancelled=was_active,
        timestamp=datetime.now()
    )


@app.get("/analytics", response_model=AnalyticsResponse, tags=["Analytics"])
async def get_analytics():
    """Aggregated recovery analytics"""
    current = _require_orchestrator()
    return AnalyticsResponse(
        analytics=current.get_analytics().to_dict(),
        duration_percentiles=current.analytics.duration_percentiles(),
        timestamp=datetime.now()
    )


@app.post("/analytics/reset", response_model=AnalyticsResponse, tags=["Analytics"])
async def reset_analytics():
    """Reset aggregated analytics"""
    current = _require_orchestrator()
    current.reset_analytics()
    return AnalyticsResponse(
        analytics=current.get_analytics().to_dict(),
        duration_percentiles=current.analytics.duration_percentiles(),
        timestamp=datetime.now()
    )


@app.get("/suggestions/{error_type}", response_model=SuggestionsResponse, tags=["Analytics"])
async def get_suggestions(error_type: str):
    """Predictive suggestions for an error type"""
    current = _require_orchestrator()
    return SuggestionsResponse(
        error_type=error_type,
        suggestions=[s.to_dict() for s in current.get_recovery_suggestions(error_type)],
        timestamp=datetime.now()
    )


@app.get("/config", response_model=ConfigResponse, tags=["Configuration"])
async def get_config():
    """Current configuration"""
    current = _require_orchestrator()
    return ConfigResponse(config=current.config.model_dump(), timestamp=datetime.now())


@app.patch("/config", response_model=ConfigResponse, tags=["Configuration"])
async def update_config(request: ConfigUpdateRequest):
    """Update configuration options"""
    current = _require_orchestrator()
    current.update_config(request.model_dump(exclude_none=True))
    return ConfigResponse(config=current.config.model_dump(), timestamp=datetime.now())


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
