import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from starlette.concurrency import run_in_threadpool

from firemonitor.core.errors import DispatchError
from firemonitor.models.config_dispositivo import ConfigDispositivo
from firemonitor.schemas.dispositivo import numero_ou_none
from firemonitor.services.push import TITULO_ALERTA, PushProvider

logger = logging.getLogger(__name__)

FUMACA = "smoke"
TEMPERATURA = "temperature"


@dataclass(frozen=True)
class Alerta:
    device_id: str          # dono da config que recebe o alerta
    origem: str             # deviceId da leitura
    token: str
    tipo: str               # FUMACA | TEMPERATURA
    valor: float
    limite: float
    mensagem: str

    def dados(self) -> Dict[str, Any]:
        return {"deviceId": self.origem, "type": self.tipo, "value": self.valor, "threshold": self.limite}


@dataclass(frozen=True)
class DispatchOutcome:
    alerta: Alerta
    ok: bool
    erro: Optional[str] = None


def excede(valor: Optional[float], limite: Optional[float]) -> bool:
    """
    valor > limite, com os dois já normalizados por numero_ou_none.
    None (limite ausente ou inválido) nunca é excedido.
    """
    if limite is None or valor is None:
        return False
    return valor > limite


def avaliar_leitura(
    device_id: str,
    temperatura: float,
    fumaca: float,
    configs: Iterable[ConfigDispositivo],
    excluir_origem: bool = False,
) -> List[Alerta]:
    """
    Decide quais alertas a leitura gera. Cada config é avaliada sozinha:
    fumaça e temperatura disparam de forma independente (0, 1 ou 2 alertas).
    """
    alertas: List[Alerta] = []
    valor_fumaca = numero_ou_none(fumaca)
    valor_temperatura = numero_ou_none(temperatura)

    for cfg in configs:
        if not cfg.notificacoes_ativas:
            continue
        if excluir_origem and cfg.device_id == device_id:
            continue
        if not cfg.push_token:
            continue

        limite_fumaca = numero_ou_none(cfg.limite_fumaca)
        if excede(valor_fumaca, limite_fumaca):
            alertas.append(Alerta(
                device_id=cfg.device_id,
                origem=device_id,
                token=cfg.push_token,
                tipo=FUMACA,
                valor=fumaca,
                limite=limite_fumaca,
                mensagem=f"Nível de fumaça em {device_id}: {fumaca:g} ppm (limite {limite_fumaca:g})",
            ))

        limite_temperatura = numero_ou_none(cfg.limite_temperatura)
        if excede(valor_temperatura, limite_temperatura):
            alertas.append(Alerta(
                device_id=cfg.device_id,
                origem=device_id,
                token=cfg.push_token,
                tipo=TEMPERATURA,
                valor=temperatura,
                limite=limite_temperatura,
                mensagem=f"Temperatura em {device_id}: {temperatura:g} °C (limite {limite_temperatura:g})",
            ))

    return alertas


async def despachar_alertas(provider: PushProvider, alertas: Iterable[Alerta]) -> List[DispatchOutcome]:
    """
    Envia cada alerta pelo provedor, um de cada vez, sem retry.
    Falha num envio vira um DispatchOutcome com ok=False e o laço segue.
    """
    resultados: List[DispatchOutcome] = []

    for alerta in alertas:
        try:
            await run_in_threadpool(provider.send, alerta.token, TITULO_ALERTA, alerta.mensagem, alerta.dados())
        except DispatchError as e:
            logger.error("Alerta de %s para %s não enviado: %s", alerta.tipo, alerta.device_id, e.motivo)
            resultados.append(DispatchOutcome(alerta, ok=False, erro=e.motivo))
        except Exception as e:
            logger.exception("Erro inesperado enviando alerta para %s", alerta.device_id)
            resultados.append(DispatchOutcome(alerta, ok=False, erro=str(e)))
        else:
            logger.info("Alerta de %s enviado para %s (leitura de %s)", alerta.tipo, alerta.device_id, alerta.origem)
            resultados.append(DispatchOutcome(alerta, ok=True))

    return resultados
