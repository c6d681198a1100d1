"""
Recovery API Models

Pydantic models for request/response validation and API documentation.
"""

from datetime import datetime
from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field


class RecoveryAttemptModel(BaseModel):
    """One executed recovery action"""
    id: str = Field(..., description="Attempt identifier")
    timestamp: datetime = Field(..., description="When the action settled")
    strategy: str = Field(..., description="Strategy the action belongs to")
    action: str = Field(..., description="Action identifier")
    success: bool = Field(..., description="Whether the action reported success")
    duration: float = Field(..., description="Action duration in milliseconds")
    error: Optional[str] = Field(None, description="Failure or timeout message")
    metrics: Dict[str, Optional[float]] = Field(default_factory=dict, description="Telemetry captured with the attempt")


class PredictiveSuggestionModel(BaseModel):
    """Strategy recommendation derived from recovery history"""
    strategy: str = Field(..., description="Suggested strategy id")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence in the suggestion")
    reasoning: str = Field(..., description="Why the strategy is suggested")
    expected_success_rate: float = Field(..., description="Expected success rate")
    estimated_recovery_time: float = Field(..., description="Estimated recovery time in milliseconds")


class RecoveryContextModel(BaseModel):
    """State of an active recovery for display"""
    error_id: str = Field(..., description="Recovery identifier")
    error_type: str = Field(..., description="Error class name")
    error_message: str = Field(..., description="Error message")
    severity: str = Field(..., description="Error severity: low, medium, high, critical")
    kind: str = Field(..., description="Tagged error kind")
    timestamp: datetime = Field(..., description="When the recovery was initiated")
    attempts: int = Field(..., description="Executions so far")
    strategies: List[str] = Field(default_factory=list, description="Ranked candidate strategy ids")
    current_strategy: Optional[str] = Field(None, description="Strategy of the latest execution")
    history: List[RecoveryAttemptModel] = Field(default_factory=list, description="Executed actions, oldest first")
    circuit_breaker_state: str = Field(..., description="Last observed breaker state: closed, open, half-open")
    predictive_suggestions: List[PredictiveSuggestionModel] = Field(default_factory=list, description="Suggestions captured at initiation")
    status: str = Field(..., description="Recovery status")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Caller context")


class RecoveryListResponse(BaseModel):
    """Active recoveries"""
    recoveries: List[RecoveryContextModel] = Field(default_factory=list, description="Active recovery contexts")
    total: int = Field(..., description="Number of active recoveries")
    timestamp: datetime = Field(..., description="Response timestamp")


class ExecuteRecoveryRequest(BaseModel):
    """Request to run a recovery strategy"""
    strategy_id: Optional[str] = Field(None, description="Strategy to run; top-ranked candidate when omitted")


class ExecuteRecoveryResponse(BaseModel):
    """Result of running a recovery strategy"""
    recovery_id: str = Field(..., description="Recovery identifier")
    success: bool = Field(..., description="Whether the recovery completed")
    status: str = Field(..., description="Recovery status after execution")
    timestamp: datetime = Field(..., description="Response timestamp")


class CancelRecoveryResponse(BaseModel):
    """Result of cancelling a recovery"""
    recovery_id: str = Field(..., description="Recovery identifier")
    cancelled: bool = Field(..., description="Whether an active recovery was removed")
    timestamp: datetime = Field(..., description="Response timestamp")


class AnalyticsResponse(BaseModel):
    """Aggregated recovery analytics"""
    analytics: Dict[str, Any] = Field(..., description="Analytics snapshot")
    duration_percentiles: Dict[str, float] = Field(default_factory=dict, description="Recent recovery duration percentiles (ms)")
    timestamp: datetime = Field(..., description="Response timestamp")


class SuggestionsResponse(BaseModel):
    """Predictive suggestions for an error type"""
    error_type: str = Field(..., description="Error class name")
    suggestions: List[PredictiveSuggestionModel] = Field(default_factory=list, description="Suggestions above the confidence threshold")
    timestamp: datetime = Field(..., description="Response timestamp")


class ConfigResponse(BaseModel):
    """Current orchestrator configuration"""
    config: Dict[str, Any] = Field(..., description="Configuration options")
    timestamp: datetime = Field(..., description="Response timestamp")


class ConfigUpdateRequest(BaseModel):
    """Partial configuration update"""
    enable_intelligent_retry: Optional[bool] = None
    enable_fallback_strategies: Optional[bool] = None
    enable_recovery_analytics: Optional[bool] = None
    max_retry_attempts: Optional[int] = None
    base_retry_delay: Optional[float] = None
    max_retry_delay: Optional[float] = None
    exponential_backoff: Optional[bool] = None
    enable_circuit_breaker: Optional[bool] = None
    circuit_breaker_threshold: Optional[int] = None
    circuit_breaker_timeout: Optional[float] = None
    enable_recovery_cache: Optional[bool] = None
    recovery_cache_size: Optional[int] = None
    enable_predictive_recovery: Optional[bool] = None
    predictive_accuracy_threshold: Optional[float] = None


class HealthResponse(BaseModel):
    """Service health"""
    status: str = Field(..., description="healthy, degraded or unhealthy")
    timestamp: datetime = Field(..., description="Response timestamp")
    components: Dict[str, Any] = Field(default_factory=dict, description="Component status")
    statistics: Optional[Dict[str, Any]] = Field(None, description="Recovery statistics")


class ErrorResponse(BaseModel):
    """Error payload"""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    request_id: Optional[str] = Field(None, description="Request identifier")
    timestamp: datetime = Field(..., description="Error timestamp")
