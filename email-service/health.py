"""
health.py — Liveness Reporting
===============================
GET /health           — three checks ANDed into healthy (200) / unhealthy (503)
GET /health/detailed  — host and process metrics, no verdict

Neither endpoint needs the API key.
"""

import logging
import os
import platform
import time

import psutil
from flask import Blueprint, current_app, jsonify

from config import SERVICE_NAME, SERVICE_VERSION
from errors import utc_timestamp

log = logging.getLogger(__name__)

bp = Blueprint("health", __name__)

MEMORY_WARNING_PERCENT = 95
MEMORY_ERROR_PERCENT = 98


def process_uptime() -> float:
    return round(time.time() - psutil.Process().create_time(), 3)


def process_memory_percent() -> float:
    """Share of physical memory held by this process, 0-100."""
    return psutil.Process().memory_percent()


def memory_check(usage_percent: float) -> str:
    if usage_percent > MEMORY_ERROR_PERCENT:
        return "error"
    if usage_percent > MEMORY_WARNING_PERCENT:
        return "warning"
    return "ok"


def disk_check() -> str:
    try:
        os.stat(os.getcwd())
    except OSError:
        return "error"
    return "ok"


def email_service_check(dispatcher) -> str:
    try:
        dispatcher.transport.summary()
    except Exception as e:
        log.error(f"Email transport check failed: {e}")
        return "error"
    return "ok"


def _base_report(cfg) -> dict:
    return {
        "timestamp": utc_timestamp(),
        "uptime": process_uptime(),
        "version": SERVICE_VERSION,
        "environment": cfg.environment,
        "emailProvider": cfg.provider.name,
    }


@bp.route('/health')
def health():
    cfg = current_app.config["SERVICE_CONFIG"]
    try:
        started = time.perf_counter()
        checks = {
            "emailService": email_service_check(current_app.config["DISPATCHER"]),
            "memory": memory_check(process_memory_percent()),
            "disk": disk_check(),
        }
        healthy = all(status == "ok" for status in checks.values())
        body = {"status": "healthy" if healthy else "unhealthy", **_base_report(cfg), "checks": checks}

        elapsed_ms = (time.perf_counter() - started) * 1000
        log.info(f"Health check completed: status={body['status']} "
                 f"response_time={elapsed_ms:.1f}ms checks={checks}")
        return jsonify(body), 200 if healthy else 503

    except Exception as e:
        log.error(f"Health check failed: {e}")
        return jsonify({
            "status": "unhealthy",
            **_base_report(cfg),
            "checks": {"emailService": "error", "memory": "error", "disk": "error"},
            "error": str(e),
        }), 503


@bp.route('/health/detailed')
def health_detailed():
    cfg = current_app.config["SERVICE_CONFIG"]
    try:
        vm = psutil.virtual_memory()
        proc = psutil.Process()
        proc_mem = proc.memory_info()
        dispatcher = current_app.config["DISPATCHER"]
        return jsonify({
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "environment": cfg.environment,
            "uptime": process_uptime(),
            "timestamp": utc_timestamp(),
            "system": {
                "platform": platform.system().lower(),
                "arch": platform.machine(),
                "pythonVersion": platform.python_version(),
                "memory": {
                    "total": vm.total,
                    "free": vm.available,
                    "used": vm.total - vm.available,
                    "usagePercent": vm.percent,
                },
                "process": {
                    "rss": proc_mem.rss,
                    "vms": proc_mem.vms,
                    "rssMB": round(proc_mem.rss / 1024 / 1024),
                    "memoryPercent": round(proc.memory_percent(), 2),
                },
                "cpu": {
                    "count": psutil.cpu_count(),
                    "model": platform.processor() or "Unknown",
                },
                "loadAverage": list(psutil.getloadavg()),
            },
            "config": {
                "port": cfg.port,
                "emailProvider": cfg.provider.name,
                "transport": dispatcher.transport.summary(),
                "rateLimit": {
                    "windowMs": cfg.rate_limit.window_ms,
                    "maxRequests": cfg.rate_limit.max_requests,
                },
            },
        })
    except Exception as e:
        log.error(f"Detailed health check failed: {e}")
        return jsonify({
            "success": False,
            "error": "Health check failed",
            "timestamp": utc_timestamp(),
        }), 500
