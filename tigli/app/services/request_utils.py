"""Client address resolution for rate limiting and request logs."""
from flask import current_app, has_app_context, request as flask_request


def _trust_proxy_headers():
    if not has_app_context():
        return True
    return bool(current_app.config.get("TRUST_PROXY_HEADERS", True))


def get_client_ip(req=None):
    """
    Address the submission limits are counted against.

    Behind the hosting proxy the left-most X-Forwarded-For entry (or X-Real-IP)
    is the visitor. With TRUST_PROXY_HEADERS off those headers are ignored,
    so a client cannot pick its own rate-limit bucket.
    """
    req = req or flask_request

    if _trust_proxy_headers():
        forwarded = [part.strip() for part in req.headers.get("X-Forwarded-For", "").split(",")]
        forwarded = [part for part in forwarded if part]
        if forwarded:
            return forwarded[0]

        real_ip = (req.headers.get("X-Real-IP") or "").strip()
        if real_ip:
            return real_ip

    return req.remote_addr or "unknown"
