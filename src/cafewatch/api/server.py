"""FastAPI HTTP server exposing the presence registry.

Terminal endpoints (called by every terminal, roughly once per second):

    POST /api/heartbeat                         <- {"ip", "timestamp", "userAgent"}
    GET  /api/client/check/{ip}
    GET  /api/systems/launch-status/{ip}
    POST /api/systems/launch-acknowledge/{ip}

Admin endpoints (called by the operator panel):

    GET    /api/systems
    GET    /api/systems/check/{ip}
    POST   /api/systems/assign                  <- {"ip", "name"}
    POST   /api/systems/launch                  <- {"ip", "software", "systemName"}
    DELETE /api/systems/{ip}

Diagnostics:

    GET /api/info, /api/debug, /api/test, /api/health

Field names are camelCase on the wire to match the admin panel and the
terminal client. Timestamps are epoch milliseconds.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from cafewatch import __version__
from cafewatch.domain.models import LaunchDirective, StatusResult
from cafewatch.registry import (
    EXPECTED_HEARTBEAT_INTERVAL_MS,
    LaunchCoordinator,
    NamingService,
    NotFound,
    PresenceRegistry,
    RegistryError,
)
from cafewatch.registry.clock import Clock
from cafewatch.utils.timefmt import format_timestamp

logger = logging.getLogger(__name__)

SERVER_NAME = "Internet Cafe System Monitor"

ENDPOINTS = [
    "GET  /api/info - Server information",
    "GET  /api/systems - List all systems",
    "GET  /api/systems/check/:ip - Check specific system",
    "POST /api/systems/assign - Assign name to system",
    "POST /api/systems/launch - Send launch command to system",
    "GET  /api/systems/launch-status/:ip - Launch status for a system",
    "POST /api/systems/launch-acknowledge/:ip - Acknowledge launch",
    "DELETE /api/systems/:ip - Remove system",
    "POST /api/heartbeat - Client heartbeat",
    "GET  /api/client/check/:ip - Check client status",
    "GET  /api/debug - Detailed system info",
    "GET  /api/test - Connectivity test",
    "GET  /api/health - Health check",
]


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class HeartbeatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ip: str | None = Field(default=None, description="Terminal network address")
    # Client clock; never read, any JSON value is accepted
    timestamp: Any = Field(default=None, description="Client clock")
    user_agent: str | None = Field(default=None, alias="userAgent")


class AssignRequest(BaseModel):
    ip: str | None = Field(default=None)
    name: str | None = Field(default=None, description="Display name to assign")


class LaunchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ip: str | None = Field(default=None)
    software: list[str] | None = Field(default=None, description="Software to start, in order")
    system_name: str | None = Field(default=None, alias="systemName")


# ---------------------------------------------------------------------------
# Wire formatting
# ---------------------------------------------------------------------------

def _system_summary(status: StatusResult) -> dict[str, Any]:
    return {
        "ip": status.identifier,
        "name": status.display_name,
        "isActive": status.active,
        "lastHeartbeat": status.last_heartbeat_at,
        "lastSeen": format_timestamp(status.last_heartbeat_at),
        "createdAt": status.created_at,
        "ageSeconds": status.age_ms // 1000,
        "userAgent": status.client_metadata,
        "heartbeats": status.heartbeat_count,
    }


def _launch_config(directive: LaunchDirective) -> dict[str, Any]:
    return {
        "software": directive.software,
        "launchedAt": directive.launched_at,
        "systemName": directive.system_name,
        "launched": True,
        "acknowledged": directive.acknowledged,
        "acknowledgedAt": directive.acknowledged_at,
    }


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    registry: PresenceRegistry | None = None,
    clock: Clock | None = None,
    active_window_ms: int | None = None,
    recent_window_ms: int | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create the registry API application.

    Args:
        registry: Optional pre-built PresenceRegistry (for testing).
        clock: Time source for a registry built here; ignored when
               ``registry`` is given.
        active_window_ms: Override of the 30 s active window.
        recent_window_ms: Override of the 300 s naming window.
        cors_origins: Allowed CORS origins; all origins by default.
    """
    if registry is None:
        windows: dict[str, int] = {}
        if active_window_ms is not None:
            windows["active_window_ms"] = active_window_ms
        if recent_window_ms is not None:
            windows["recent_window_ms"] = recent_window_ms
        registry = PresenceRegistry(clock=clock, **windows)

    app = FastAPI(
        title="cafewatch Registry",
        description="Presence and session registry for networked terminals",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Cache-Control"],
        allow_credentials=False,
    )

    app.state.registry = registry
    app.state.naming = NamingService(registry)
    app.state.launcher = LaunchCoordinator(registry)
    app.state.started = time.monotonic()

    def _now() -> int:
        return app.state.registry.clock.now_ms()

    def _uptime() -> float:
        return round(time.monotonic() - app.state.started, 3)

    # -------------------------------------------------------------------
    # Error handling
    # -------------------------------------------------------------------

    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, **exc.details()},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Invalid request body",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "success": False,
                    "error": "Endpoint not found",
                    "path": request.url.path,
                    "method": request.method,
                    "availableEndpoints": ENDPOINTS,
                },
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Server error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal server error",
                "message": str(exc),
                "timestamp": _now(),
            },
        )

    # -------------------------------------------------------------------
    # Terminal endpoints
    # -------------------------------------------------------------------

    @app.post("/api/heartbeat")
    async def heartbeat(request: HeartbeatRequest) -> dict[str, Any]:
        reg: PresenceRegistry = app.state.registry
        result = reg.record_heartbeat(request.ip, request.user_agent, now=_now())
        return {
            "success": True,
            "ip": result.identifier,
            "hasName": result.has_name,
            "assignedName": result.assigned_name,
            "isActive": True,
            "message": "Heartbeat received successfully",
            "timestamp": result.timestamp,
            "totalHeartbeats": result.heartbeat_count,
        }

    @app.get("/api/client/check/{ip}")
    async def client_check(ip: str) -> dict[str, Any]:
        reg: PresenceRegistry = app.state.registry
        try:
            status = reg.get_status(ip, now=_now())
        except NotFound:
            return {
                "exists": False,
                "message": "System not registered with server",
                "suggestion": "Make sure client app is running on that PC",
            }
        return {
            "exists": True,
            "name": status.display_name,
            "isActive": status.active,
            "lastHeartbeat": status.last_heartbeat_at,
            "lastSeen": format_timestamp(status.last_heartbeat_at),
            "createdAt": status.created_at,
            "userAgent": status.client_metadata,
            "heartbeats": status.heartbeat_count,
        }

    @app.get("/api/systems/launch-status/{ip}")
    async def launch_status(ip: str) -> dict[str, Any]:
        launcher: LaunchCoordinator = app.state.launcher
        result = launcher.get_launch_status(ip)
        if result.directive is None:
            return {"success": True, "launched": False, "message": "System not launched yet"}
        return {"success": True, "launched": True, "config": _launch_config(result.directive)}

    @app.post("/api/systems/launch-acknowledge/{ip}")
    async def launch_acknowledge(ip: str) -> dict[str, Any]:
        launcher: LaunchCoordinator = app.state.launcher
        result = launcher.acknowledge(ip, now=_now())
        return {
            "success": True,
            "message": "Launch acknowledged",
            "acknowledgedAt": result.acknowledged_at,
        }

    # -------------------------------------------------------------------
    # Admin endpoints
    # -------------------------------------------------------------------

    @app.get("/api/systems")
    async def list_systems() -> dict[str, Any]:
        reg: PresenceRegistry = app.state.registry
        now = _now()
        systems = [_system_summary(s) for s in reg.list_all(now=now)]
        return {
            "success": True,
            "total": len(systems),
            "active": sum(1 for s in systems if s["isActive"]),
            "systems": systems,
            "timestamp": now,
        }

    @app.get("/api/systems/check/{ip}")
    async def check_system(ip: str) -> dict[str, Any]:
        reg: PresenceRegistry = app.state.registry
        try:
            status = reg.get_status(ip, now=_now())
        except NotFound:
            return {
                "exists": False,
                "isActive": False,
                "message": f"System {ip} not found. Make sure client app is running on that PC.",
            }
        last_seen = format_timestamp(status.last_heartbeat_at)
        if status.active:
            message = f"System {ip} is ACTIVE and ready for naming"
        elif status.idle_ms < reg.recent_window_ms:
            message = (
                f"System {ip} is INACTIVE (last seen: {last_seen}) "
                "but can still be named"
            )
        else:
            message = (
                f"System {ip} is INACTIVE (last seen: {last_seen}); "
                "it must send a heartbeat before it can be named"
            )
        return {
            "exists": True,
            "isActive": status.active,
            "name": status.display_name,
            "lastHeartbeat": status.last_heartbeat_at,
            "lastSeen": last_seen,
            "message": message,
        }

    @app.post("/api/systems/assign")
    async def assign_name(request: AssignRequest) -> dict[str, Any]:
        naming: NamingService = app.state.naming
        result = naming.assign_name(request.ip, request.name, now=_now())
        return {
            "success": True,
            "ip": result.identifier,
            "name": result.name,
            "oldName": result.old_name,
            "message": f'Name "{result.name}" successfully assigned to {result.identifier}',
            "timestamp": result.timestamp,
            "lastSeen": format_timestamp(result.timestamp),
        }

    @app.delete("/api/systems/{ip}")
    async def remove_system(ip: str) -> dict[str, Any]:
        reg: PresenceRegistry = app.state.registry
        record = reg.remove(ip)
        return {
            "success": True,
            "message": f"System {ip} removed successfully",
            "removedSystem": {
                "ip": record.identifier,
                "name": record.display_name,
                "lastSeen": format_timestamp(record.last_heartbeat_at),
            },
        }

    @app.post("/api/systems/launch")
    async def launch_system(request: LaunchRequest) -> dict[str, Any]:
        launcher: LaunchCoordinator = app.state.launcher
        result = launcher.launch(
            request.ip, request.software, request.system_name, now=_now()
        )
        return {
            "success": True,
            "ip": result.identifier,
            "message": f"Launch command sent to {result.system_name}",
            "software": result.software,
            "timestamp": result.timestamp,
        }

    # -------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------

    @app.get("/api/info")
    async def info() -> dict[str, Any]:
        reg: PresenceRegistry = app.state.registry
        now = _now()
        total, active = reg.counts(now=now)
        return {
            "server": SERVER_NAME,
            "version": __version__,
            "status": "running",
            "uptime": _uptime(),
            "timestamp": format_timestamp(now),
            "systems": {"total": total, "active": active, "inactive": total - active},
            "endpoints": ENDPOINTS,
        }

    @app.get("/api/debug")
    async def debug() -> dict[str, Any]:
        reg: PresenceRegistry = app.state.registry
        now = _now()
        entries = []
        # list_all is newest-first; the stable sort keeps that order within each group
        for status in sorted(reg.list_all(now=now), key=lambda s: not s.active):
            entry = _system_summary(status)
            entry.update(
                lastSeen=f"{status.idle_ms // 1000} seconds ago",
                lastSeenTime=format_timestamp(status.last_heartbeat_at),
                age=f"{status.age_ms // 1000} seconds",
                status="ACTIVE" if status.active else "INACTIVE",
                launch=(
                    _launch_config(status.launch_directive)
                    if status.launch_directive
                    else None
                ),
            )
            entries.append(entry)
        return {
            "serverTime": format_timestamp(now),
            "timestamp": now,
            "totalSystems": len(entries),
            "activeSystems": sum(1 for e in entries if e["isActive"]),
            "activeWindowMs": reg.active_window_ms,
            "recentWindowMs": reg.recent_window_ms,
            "heartbeatIntervalMs": EXPECTED_HEARTBEAT_INTERVAL_MS,
            "systems": entries,
        }

    @app.get("/api/test")
    async def test() -> dict[str, Any]:
        reg: PresenceRegistry = app.state.registry
        now = _now()
        return {
            "success": True,
            "message": "Server is working correctly",
            "timestamp": format_timestamp(now),
            "serverTime": now,
            "systemsCount": len(reg),
            "endpoints": {
                "client": "/api/heartbeat (POST)",
                "admin": "/api/systems (GET)",
                "assign": "/api/systems/assign (POST)",
                "check": "/api/systems/check/:ip (GET)",
            },
        }

    @app.get("/api/health")
    async def health() -> dict[str, Any]:
        reg: PresenceRegistry = app.state.registry
        return {
            "status": "healthy",
            "timestamp": _now(),
            "uptime": _uptime(),
            "systems": len(reg),
        }

    return app


def main() -> None:
    """Entry point for running the registry server standalone."""
    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=5000)


if __name__ == "__main__":
    main()
