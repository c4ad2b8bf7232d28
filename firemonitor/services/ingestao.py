import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from firemonitor.core.errors import ReadingValidationError
from firemonitor.models.config_dispositivo import ConfigDispositivo
from firemonitor.schemas.leitura import LeituraIn, LeituraOut
from firemonitor.services.alertas import DispatchOutcome, avaliar_leitura, despachar_alertas
from firemonitor.services.assinaturas import SubscriptionTable
from firemonitor.services.dispositivo_service import listar_configs_elegiveis
from firemonitor.services.leitura_service import salvar_leitura
from firemonitor.services.push import PushProvider

logger = logging.getLogger(__name__)


@dataclass
class ResultadoIngestao:
    leitura: LeituraOut
    entregues: int = 0
    alertas: List[DispatchOutcome] = field(default_factory=list)

    @property
    def alertas_com_falha(self) -> List[DispatchOutcome]:
        return [r for r in self.alertas if not r.ok]


def validar_leitura(dados: Union[LeituraIn, Dict[str, Any]]) -> LeituraIn:
    if isinstance(dados, LeituraIn):
        return dados
    try:
        return LeituraIn.model_validate(dados)
    except ValidationError as e:
        raise ReadingValidationError(str(e)) from e


class IngestionPipeline:
    """
    Caminho de uma leitura: valida -> grava -> transmite -> avalia alertas.

    Só a gravação é fatal (StoreUnavailable sobe para quem chamou).
    Transmissão e alertas são melhor esforço: erro vai para o log e a
    ingestão é considerada concluída mesmo assim.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        subscriptions: SubscriptionTable,
        push_provider: PushProvider,
        escopo_alerta: str = "device",
        excluir_origem: bool = False,
    ):
        self.session_factory = session_factory
        self.subscriptions = subscriptions
        self.push_provider = push_provider
        self.escopo_alerta = escopo_alerta
        self.excluir_origem = excluir_origem

    def _gravar(self, dados: LeituraIn) -> LeituraOut:
        db = self.session_factory()
        try:
            return LeituraOut.do_modelo(salvar_leitura(db, dados))
        finally:
            db.close()

    def _configs_elegiveis(self, device_id: str) -> List[ConfigDispositivo]:
        db = self.session_factory()
        try:
            return listar_configs_elegiveis(db, device_id, self.escopo_alerta)
        finally:
            db.close()

    async def processar(self, dados: Union[LeituraIn, Dict[str, Any]]) -> ResultadoIngestao:
        entrada = validar_leitura(dados)

        # 1) persistência: se falhar, para aqui
        leitura = await run_in_threadpool(self._gravar, entrada)
        resultado = ResultadoIngestao(leitura=leitura)

        # 2) WebSockets inscritos no device
        try:
            resultado.entregues = await self.subscriptions.fanout(leitura.device_id, leitura.para_json())
        except Exception:
            logger.exception("Erro transmitindo leitura de %s", leitura.device_id)

        # 3) limites e push
        try:
            configs = await run_in_threadpool(self._configs_elegiveis, leitura.device_id)
            alertas = avaliar_leitura(
                leitura.device_id,
                leitura.temperature,
                leitura.smoke,
                configs,
                excluir_origem=self.excluir_origem,
            )
            resultado.alertas = await despachar_alertas(self.push_provider, alertas)
        except Exception:
            logger.exception("Erro avaliando alertas da leitura de %s", leitura.device_id)

        falhas = len(resultado.alertas_com_falha)
        logger.info(
            "Leitura de %s gravada (id=%s): %d entrega(s) WebSocket, %d alerta(s), %d falha(s) de push",
            leitura.device_id, leitura.id, resultado.entregues, len(resultado.alertas), falhas,
        )
        return resultado
