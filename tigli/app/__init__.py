"""Application factory for the landing backend."""
from pathlib import Path
from flask import Flask
from tigli.config import Config, init_app_config

from .extensions import cors, limiter
from .logging_config import configure_logging, setup_request_logging

PROJECT_ROOT = Path(__file__).resolve().parents[2]
PUBLIC_DIR = PROJECT_ROOT / "frontend" / "public"
STATIC_DIR = PROJECT_ROOT / "frontend" / "static"


def init_sentry(app: Flask) -> None:
    """
    Initializes Sentry error and performance monitoring.

    Only enabled when SENTRY_DSN is set and the environment is production or
    staging, or development with SENTRY_ENABLE_IN_DEV=true.
    """
    sentry_dsn = app.config.get('SENTRY_DSN')
    if not sentry_dsn:
        app.logger.info("Sentry not initialized: SENTRY_DSN is not set")
        return

    runtime_env = app.config.get('APP_ENV', 'production')
    enable_in_dev = app.config.get('SENTRY_ENABLE_IN_DEV', False)

    if runtime_env not in {'production', 'staging'}:
        if runtime_env == 'development' and enable_in_dev:
            app.logger.info("Sentry enabled in development (SENTRY_ENABLE_IN_DEV=true)")
        else:
            app.logger.info(f"Sentry not initialized: environment '{runtime_env}' is not production/staging")
            return

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration

    sentry_environment = app.config.get('SENTRY_ENVIRONMENT') or runtime_env
    traces_sample_rate = app.config.get('SENTRY_TRACES_SAMPLE_RATE', 0.1)
    enable_profiling = app.config.get('SENTRY_ENABLE_PROFILING', False)

    try:
        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=sentry_environment,
            integrations=[FlaskIntegration()],
            traces_sample_rate=traces_sample_rate,
            profiles_sample_rate=traces_sample_rate if enable_profiling else 0.0,
            # Leads are personal data: never attach them to events
            send_default_pii=False,
            release=app.config.get('APP_VERSION'),
        )
    except Exception as e:
        app.logger.error(f"Error initializing Sentry: {e}", exc_info=True)
        return

    @app.before_request
    def add_sentry_context():
        sentry_sdk.set_tag("app_env", runtime_env)

    app.logger.info(
        f"Sentry initialized "
        f"[environment={sentry_environment}, traces_sample_rate={traces_sample_rate}]"
    )


def create_app(config_object=Config) -> Flask:
    """
    Flask application factory.

    Loads configuration, logging, monitoring, CORS and rate limiting, then
    registers the landing pages and the /api blueprint.
    """
    app = Flask(
        __name__,
        static_folder=str(STATIC_DIR),
        static_url_path="/static",
        template_folder=str(PUBLIC_DIR),
    )

    app.config.from_object(config_object)
    init_app_config(app)

    configure_logging(app)
    setup_request_logging(app)

    init_sentry(app)

    runtime_env = app.config.get("APP_ENV", "production")
    cors_origins = app.config.get("CORS_ORIGINS") or []

    if runtime_env == "production":
        if not cors_origins:
            raise RuntimeError(
                "FATAL: CORS_ORIGINS non è configurato per la produzione. "
                "Definisci l'elenco dei domini consentiti prima di avviare l'applicazione."
            )
    if not cors_origins:
        cors_origins = "*"

    supports_credentials = bool(app.config.get("CORS_SUPPORTS_CREDENTIALS", False))

    cors.init_app(
        app,
        resources={r"/api/*": {"origins": cors_origins}},
        supports_credentials=supports_credentials,
    )

    limiter.init_app(app)

    from .routes import api as api_blueprint
    from .routes import frontend as frontend_blueprint

    app.register_blueprint(frontend_blueprint)
    app.register_blueprint(api_blueprint, url_prefix="/api")

    return app
