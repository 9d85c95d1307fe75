from flask_cors import CORS
from flask_limiter import Limiter
from .services.request_utils import get_client_ip


cors = CORS()
# Storage comes from RATELIMIT_STORAGE_URI at init_app time
limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[],  # No default limits, only explicit per-endpoint
)
