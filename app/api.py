import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from app.config import Settings
from app.email_utils import MailSender, SmtpMailSender
from app.errors import RATE_LIMITED, error_response, register_error_handlers
from app.routes import account, auth, availability, public
from app.security import SlidingWindowLimiter, apply_security_headers, client_key
from app.tokens import TokenCodec
from core.database import AccountStore
from core.db.base import Database
from core.db.users import new_code

log = logging.getLogger("app.api")

REQUEST_ID_HEADER = "X-Request-ID"


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[AccountStore] = None,
    mailer: Optional[MailSender] = None,
    tokens: Optional[TokenCodec] = None,
) -> FastAPI:
    """
    Build the application. Collaborators that are not passed in are built
    from `settings` (read from the environment when omitted).
    """
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    settings = settings or Settings.from_env()
    owns_store = store is None
    if owns_store:
        store = AccountStore(Database(settings.database_url), code_expiry_minutes=settings.code_expiry_minutes)
    if tokens is None:
        tokens = TokenCodec(settings.jwt_secret, ttl_seconds=settings.auth_token_ttl_seconds)
    if mailer is None and not settings.is_test:
        mailer = SmtpMailSender(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_store:
            store.init_schema()
        log.info("%s started (env=%s)", settings.app_name, settings.app_env)
        yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.tokens = tokens
    app.state.mailer = mailer
    app.state.limiter = SlidingWindowLimiter()

    register_error_handlers(app)

    app.include_router(public.router)
    app.include_router(auth.router)
    app.include_router(account.router)
    app.include_router(availability.router)

    # Registered innermost first: request id wraps everything else.
    @app.middleware("http")
    async def global_rate_limit(request: Request, call_next):
        key = f"global:{client_key(request)}"
        if not app.state.limiter.allow_request(key, limit=settings.global_rate_limit, window_seconds=60):
            log.warning("[%s] rate limited %s", request.state.request_id, key)
            return error_response(429, RATE_LIMITED)
        return await call_next(request)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        apply_security_headers(response)
        return response

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_code(8)
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    return app
