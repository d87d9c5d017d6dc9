from quart import Quart, request, jsonify
from quart_cors import cors
from bunkerdesk.routes import register_blueprints
from bunkerdesk.database import SessionLocal, init_db
from bunkerdesk.config import CORS_ALLOWED_ORIGINS
from bunkerdesk.utils.call_scheduler import ScheduleError
from bunkerdesk.utils.note_sharing import ShareError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import asyncio
import sentry_sdk
from sentry_sdk.integrations.quart import QuartIntegration
from bunkerdesk.utils.logging_utils import logger, log_endpoint
import time


async def warmup_db():
    retries = 5
    delay = 2
    while retries > 0:
        session = SessionLocal()
        try:
            session.execute(text("SELECT 1"))
            logger.info("[Warmup] Database is ready.")
            return True
        except SQLAlchemyError as e:
            logger.warning(f"[Warmup] Waiting for DB... ({retries} left) {e}")
            await asyncio.sleep(delay)
            retries -= 1
        finally:
            session.close()
    logger.error("[Warmup] Gave up waiting for DB.")
    return False


def create_app():
    app = Quart(__name__)

    app = cors(
        app,
        allow_origin=CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["Content-Disposition"]
    )

    app.config.from_pyfile("config.py")
    app.config.setdefault("MAX_CONTENT_LENGTH", 10 * 1024 * 1024)  # CSV imports

    if app.config.get("SENTRY_DSN"):
        sentry_sdk.init(
            dsn=app.config["SENTRY_DSN"],
            integrations=[
                QuartIntegration(),
            ],
            traces_sample_rate=1.0,
        )

    register_blueprints(app)

    @app.errorhandler(ScheduleError)
    @app.errorhandler(ShareError)
    async def handle_domain_error(error):
        return jsonify({"error": str(error)}), 400

    # Request logging middleware
    @app.before_request
    async def before_request():
        request.start_time = time.time()

    @app.after_request
    async def after_request(response):
        if hasattr(request, 'start_time'):
            duration_ms = (time.time() - request.start_time) * 1000
            log_endpoint(
                endpoint_name=request.endpoint or request.path,
                duration_ms=duration_ms,
                status_code=response.status_code
            )
        return response

    @app.before_serving
    async def startup():
        if await warmup_db():
            init_db()
        logger.info("BunkerDesk CRM backend started successfully")

    return app
