# Recovery Orchestrator HTTP API
# Observability and control endpoints for UI collaborators
