"""Service health check."""

import os
from datetime import datetime, timezone
from flask import jsonify, current_app

from . import api
from ..services.crm import resolve_api_key


@api.get("/health")
def health_check():
    """Reports whether the CRM is configured and how loaded the host is."""
    crm_status = "configured" if resolve_api_key() else "missing"
    if crm_status == "missing":
        current_app.logger.error(
            "BREVO_API_KEY mancante: i contatti non possono essere inoltrati",
            extra={"event": "health.crm_missing"},
        )

    load_ratio = None
    load_value = None
    cpu_count = os.cpu_count() or 1
    try:
        load_value = os.getloadavg()[0]
        load_ratio = load_value / max(cpu_count, 1)
    except (AttributeError, OSError):
        load_ratio = None

    def classify_crm():
        return "ok" if crm_status == "configured" else "critical"

    def classify_system():
        if load_ratio is None:
            return "unknown"
        if load_ratio <= 0.6:
            return "ok"
        if load_ratio <= 1.5:
            return "warning"
        return "critical"

    indicators = {
        "crm": classify_crm(),
        "system": classify_system(),
    }

    if crm_status != "configured":
        overall = "error"
    elif any(value in {"warning", "critical"} for value in indicators.values()):
        overall = "degraded"
    else:
        overall = "ok"

    payload = {
        "status": overall,
        "crm_status": crm_status,
        "metrics": {
            "crm_timeout_seconds": current_app.config.get("CRM_TIMEOUT_SECONDS"),
            "system_load": {
                "ratio": round(load_ratio, 2) if load_ratio is not None else None,
                "cores": cpu_count,
                "raw": round(load_value, 2) if load_value is not None else None,
            },
        },
        "indicators": indicators,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    status_code = 200 if crm_status == "configured" else 500
    return jsonify(payload), status_code
