"""Minimal deterministic OpenAPI spec for the portal endpoints.

Scope (purposefully narrow): paths, summaries, auth requirement and the request
status lifecycle as `x-transitions` / `x-statuses` on the ServiceRequest schema.
"""
from typing import Any, Dict, List, Tuple

from portal.models.service_request import ServiceRequest
from portal.services.requests import REQUEST_FSM

__all__ = ["build_openapi_spec"]

# (path, method, summary, auth) ; auth: None | "session" | "admin"
ENDPOINTS: List[Tuple[str, str, str, Any]] = [
    ("/", "get", "Landing links", None),
    ("/healthz", "get", "Health check", None),
    ("/auth/signup", "post", "Create customer account", None),
    ("/auth/login", "post", "Customer sign in", None),
    ("/auth/admin/login", "post", "Admin sign in (role checked)", None),
    ("/auth/logout", "post", "Sign out current session", None),
    ("/auth/session", "get", "Current session", None),
    ("/customer/dashboard", "get", "Customer dashboard", "session"),
    ("/customer/requests", "get", "Own service requests, newest first", "session"),
    ("/customer/requests", "post", "Submit service request", "session"),
    ("/customer/requests/form", "get", "Intake form constraints", "session"),
    ("/customer/requests/events", "get", "Own request change stream (SSE)", "session"),
    ("/admin/dashboard", "get", "Admin dashboard with stats", "admin"),
    ("/admin/stats", "get", "Request counts by status", "admin"),
    ("/admin/requests", "get", "All service requests with owner profiles", "admin"),
    ("/admin/requests/{request_id}", "get", "Single service request", "admin"),
    ("/admin/requests/{request_id}/status", "patch", "Change request status", "admin"),
    ("/admin/requests/events", "get", "All request change stream (SSE)", "admin"),
    ("/storage/{bucket}/{name}", "get", "Public image object", None),
]


def _service_request_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "id": {"type": "integer"},
            "user_id": {"type": "integer"},
            "machine_model": {"type": "string"},
            "issue_description": {"type": "string"},
            "image_url": {"type": "string", "nullable": True},
            "status": {"type": "string", "enum": list(ServiceRequest.ALL_STATUSES)},
            "preferred_date": {"type": "string", "format": "date"},
            "preferred_time": {"type": "string", "example": "10:00"},
            "scheduled_date": {"type": "string", "format": "date-time", "nullable": True},
            "created_at": {"type": "string", "format": "date-time"},
        },
        "x-statuses": list(ServiceRequest.ALL_STATUSES),
        "x-transitions": {s: REQUEST_FSM.allowed_targets(s) for s in ServiceRequest.ALL_STATUSES},
    }


def build_openapi_spec() -> Dict[str, Any]:
    paths: Dict[str, Any] = {}
    for path, method, summary, auth in ENDPOINTS:
        op: Dict[str, Any] = {"summary": summary, "responses": {"200": {"description": "OK"}}}
        if auth:
            op["security"] = [{"BearerAuth": []}]
            op["responses"]["401"] = {"description": "Session required"}
            if auth == "admin":
                op["responses"]["403"] = {"description": "Admin privileges required"}
        rid = path.strip("/").replace("/", "_").replace("{", "").replace("}", "") or "root"
        op["operationId"] = f"{method}_{rid}"
        op["tags"] = [path.split("/")[1].capitalize() or "Public"]
        paths.setdefault(path, {})[method] = op

    return {
        "openapi": "3.0.3",
        "info": {"title": "Service Portal API", "version": "0.1.0"},
        "paths": paths,
        "components": {
            "schemas": {
                "ServiceRequest": _service_request_schema(),
                "Error": {
                    "type": "object",
                    "properties": {"error": {"type": "object"}},
                    "required": ["error"],
                },
            },
            "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        },
    }
