import asyncio
import inspect
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from dal.entry_dal import EntryDAL
from dal.usage_dal import UsageDAL
from models.usage_models import UsageLimits
from routes.guided_route import router as guided_router
from routes.voice_ws import router as voice_router
from services.auth.token_verifier import StaticTokenVerifier, TokenVerifier
from services.context.context_loader import ContextLoader
from services.openai.chat_service import ChatService
from services.openai.speech_service import SpeechService
from services.openai.transcriber import Transcriber
from services.relay.realtime_bridge import RealtimeBridgeRegistry, RealtimeConnector, connect_realtime
from services.relay.session_store import SessionStore
from services.relay.usage_governor import UsageGovernor
from services.relay.ws_session import RelayServices
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import RelaySettings

SERVICE_NAME = "journal-voice-relay"

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


async def _sweep_idle_sessions(services: RelayServices, interval_seconds: int) -> None:
    """Evict inactive sessions on a fixed timer until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            evicted = await services.sweep_idle()
        except Exception as exc:
            logging.error("Idle session sweep failed: %s", exc)
            continue
        if evicted:
            logging.info("Idle sweep evicted %d session(s)", len(evicted))


async def _close_openai_client(client) -> None:
    """Close the OpenAI client if it exposes a close/aclose method."""
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception as exc:
        logging.warning("Error closing OpenAI client: %s", exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager that builds the relay's collaborators and attaches them
    to `app.state.relay`:
      - the SQLite database (kept across restarts, at DATABASE_DIR/relay.db)
      - the OpenAI async client
      - the session store, usage governor and realtime bridge registry
    Anything passed to `create_app` is used as-is instead of the default.
    It also runs the idle-session sweep for the lifetime of the app.
    """
    settings: RelaySettings = app.state.settings
    overrides = app.state.overrides

    openai_client = overrides.get("openai_client")
    owns_client = openai_client is None
    if owns_client:
        settings.validate()
        try:
            openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
        except Exception as exc:
            raise RuntimeError("Failed to initialize OpenAI Async client") from exc

    usage_dal = overrides.get("usage_dal")
    entry_store = overrides.get("entry_store")
    if usage_dal is None or entry_store is None:
        db_initializer = AsyncDatabaseInitializer(overrides.get("database_dir"))
        await db_initializer.ensure_database()
        usage_dal = usage_dal or UsageDAL(db_initializer)
        entry_store = entry_store or EntryDAL(db_initializer)

    verifier = overrides.get("token_verifier")
    if verifier is None:
        if not settings.static_tokens:
            logging.warning("RELAY_STATIC_TOKENS is empty; every connection will be rejected")
        verifier = StaticTokenVerifier(settings.static_tokens)

    governor = UsageGovernor(usage_dal, UsageLimits(max_session_seconds=settings.max_session_seconds))
    store = SessionStore(
        governor,
        max_session_seconds=settings.max_session_seconds,
        inactivity_timeout_seconds=settings.inactivity_timeout_seconds,
    )
    context_loader = ContextLoader(entry_store)
    services = RelayServices(
        store=store,
        bridges=RealtimeBridgeRegistry(
            settings,
            context_loader,
            connector=overrides.get("realtime_connector") or connect_realtime,
        ),
        context_loader=context_loader,
        entry_store=entry_store,
        verifier=verifier,
        transcriber=Transcriber(openai_client, model=settings.transcription_model),
        chat=ChatService(openai_client, model=settings.chat_model),
        speech=SpeechService(openai_client, model=settings.tts_model, voice=settings.tts_voice),
    )
    app.state.relay = services
    app.state.openai_client = openai_client

    sweep_task = asyncio.create_task(_sweep_idle_sessions(services, settings.sweep_interval_seconds))
    logging.info("Voice relay ready (environment: %s)", settings.environment)
    try:
        yield
    finally:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass
        await services.bridges.close_all()
        if owns_client:
            await _close_openai_client(openai_client)


def create_app(
    settings: Optional[RelaySettings] = None,
    *,
    token_verifier: Optional[TokenVerifier] = None,
    usage_dal: Optional[UsageDAL] = None,
    entry_store: Optional[EntryDAL] = None,
    openai_client: Optional[AsyncOpenAI] = None,
    realtime_connector: Optional[RealtimeConnector] = None,
    database_dir: Optional[str] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings or RelaySettings.from_env()
    app.state.overrides = {
        "token_verifier": token_verifier,
        "usage_dal": usage_dal,
        "entry_store": entry_store,
        "openai_client": openai_client,
        "realtime_connector": realtime_connector,
        "database_dir": database_dir,
    }

    @app.get("/")
    async def index():
        """
        Service banner for load balancers and uptime checks.
        """
        return {"status": "ok", "service": SERVICE_NAME}

    @app.get("/health")
    async def health(request: Request):
        """
        Health check that reports whether the relay finished starting up.
        """
        relay = getattr(request.app.state, "relay", None)
        return {
            "status": "healthy",
            "relay_ready": relay is not None,
            "active_sessions": len(relay.store) if relay is not None else 0,
        }

    # Register application routers
    app.include_router(voice_router)
    app.include_router(guided_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=app.state.settings.port)
