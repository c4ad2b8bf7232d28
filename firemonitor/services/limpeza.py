import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from firemonitor.core.errors import StoreUnavailable
from firemonitor.models.leitura import agora_utc
from firemonitor.services.leitura_service import excluir_leituras_antigas

logger = logging.getLogger(__name__)


def limpar_leituras_antigas(
    session_factory: Callable[[], Session],
    retencao: timedelta = timedelta(hours=24),
    agora: Optional[datetime] = None,
) -> int:
    """
    Apaga leituras mais velhas que `retencao`.
    Uma leitura exatamente no limite (agora - retencao) fica.
    """
    corte = (agora or agora_utc()) - retencao
    db = session_factory()
    try:
        apagadas = excluir_leituras_antigas(db, corte)
    finally:
        db.close()
    logger.info("Limpeza: %d leitura(s) anteriores a %s removidas", apagadas, corte.isoformat())
    return apagadas


def segundos_ate_proxima_execucao(agora: datetime, hora: int) -> float:
    """Segundos até a próxima ocorrência de hora:00:00 (sempre > 0)."""
    proxima = agora.replace(hour=hora, minute=0, second=0, microsecond=0)
    if proxima <= agora:
        proxima += timedelta(days=1)
    return (proxima - agora).total_seconds()


class RetentionScheduler:
    """
    Task asyncio que dorme até a hora configurada (UTC) e roda a limpeza.
    Se o processo estiver fora do ar na hora marcada, a execução é perdida:
    não existe "recuperar" a limpeza atrasada, ela roda na próxima.
    """

    def __init__(self, session_factory: Callable[[], Session], hora: int = 0, retencao_horas: int = 24):
        self.session_factory = session_factory
        self.hora = hora
        self.retencao = timedelta(hours=retencao_horas)
        self._task: Optional[asyncio.Task] = None

    async def executar_uma_vez(self) -> int:
        logger.info("Rodando limpeza diária...")
        try:
            return await run_in_threadpool(limpar_leituras_antigas, self.session_factory, self.retencao)
        except StoreUnavailable as e:
            logger.error("Limpeza falhou: %s", e)
            return 0

    async def _loop(self) -> None:
        while True:
            espera = segundos_ate_proxima_execucao(agora_utc(), self.hora)
            logger.debug("Próxima limpeza em %.0f s", espera)
            await asyncio.sleep(espera)
            await self.executar_uma_vez()

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Limpeza agendada diariamente às %02d:00 UTC (retenção %s)", self.hora, self.retencao)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
