"""
Shared utilities for the weather lookup service.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI application scaffolding

Service-specific logic lives in service packages. Do not import from
service_* packages into shared/.
"""
