import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from firemonitor.core.config import settings
from firemonitor.core.errors import StoreUnavailable
from firemonitor.db.init_db import init_db
from firemonitor.db.session import SessionLocal
from firemonitor.services.assinaturas import SubscriptionTable
from firemonitor.services.ingestao import IngestionPipeline
from firemonitor.services.limpeza import RetentionScheduler
from firemonitor.services.mqtt_ingestor import start_mqtt_ingestor, stop_mqtt_ingestor
from firemonitor.services.push import ExpoPushProvider, PushProvider
from firemonitor.api import leituras, dispositivos, ws

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(push_provider: Optional[PushProvider] = None) -> FastAPI:
    app = FastAPI(title="ESP32 Fire Monitor")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],         # permite todos os métodos (GET, POST, etc)
        allow_headers=["*"],         # permite todos os headers
    )

    # estado compartilhado: uma tabela de assinaturas por processo
    app.state.subscriptions = SubscriptionTable()
    app.state.pipeline = IngestionPipeline(
        session_factory=SessionLocal,
        subscriptions=app.state.subscriptions,
        push_provider=push_provider or ExpoPushProvider.from_settings(settings),
        escopo_alerta=settings.ALERT_SCOPE,
        excluir_origem=settings.ALERT_EXCLUDE_ORIGIN,
    )
    app.state.retencao = RetentionScheduler(
        SessionLocal,
        hora=settings.CLEANUP_HOUR,
        retencao_horas=settings.RETENTION_HOURS,
    )

    app.include_router(leituras.router)
    app.include_router(dispositivos.router)
    app.include_router(ws.router)

    @app.exception_handler(StoreUnavailable)
    async def banco_indisponivel(request: Request, exc: StoreUnavailable):
        logger.error("Banco indisponível em %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"message": "Falha ao acessar o banco de dados"})

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup():
        init_db()
        if settings.CLEANUP_ENABLED:
            app.state.retencao.start()
        start_mqtt_ingestor(app.state.pipeline, asyncio.get_running_loop())
        logger.info("Servidor pronto")

    @app.on_event("shutdown")
    async def on_shutdown():
        stop_mqtt_ingestor()
        await app.state.retencao.stop()

    return app


app = create_app()
