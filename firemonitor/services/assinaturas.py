import logging
from typing import Any, Dict, List

from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)


def conexao_aberta(ws: WebSocket) -> bool:
    return (
        ws.client_state == WebSocketState.CONNECTED
        and ws.application_state == WebSocketState.CONNECTED
    )


class SubscriptionTable:
    """
    Mapa em memória deviceId -> conexões WebSocket inscritas.

    Cada conjunto é um dict usado como "set ordenado", então o fanout entrega
    na ordem em que as conexões se inscreveram. Há também o índice reverso
    conexão -> deviceIds, para o unsubscribe_all não varrer a tabela inteira.

    subscribe/unsubscribe_all não têm nenhum await: rodando no event loop,
    ninguém enxerga o estado pela metade.
    """

    def __init__(self):
        self._por_device: Dict[str, Dict[WebSocket, None]] = {}
        self._por_conexao: Dict[WebSocket, Dict[str, None]] = {}

    def subscribe(self, ws: WebSocket, device_id: str) -> None:
        self._por_device.setdefault(device_id, {})[ws] = None
        self._por_conexao.setdefault(ws, {})[device_id] = None

    def unsubscribe_all(self, ws: WebSocket) -> None:
        for device_id in self._por_conexao.pop(ws, {}):
            conexoes = self._por_device.get(device_id)
            if conexoes is None:
                continue
            conexoes.pop(ws, None)
            if not conexoes:
                del self._por_device[device_id]

    def assinantes(self, device_id: str) -> List[WebSocket]:
        return list(self._por_device.get(device_id, {}))

    def devices_de(self, ws: WebSocket) -> List[str]:
        return list(self._por_conexao.get(ws, {}))

    def total_conexoes(self) -> int:
        return len(self._por_conexao)

    async def fanout(self, device_id: str, leitura: Dict[str, Any]) -> int:
        """
        Envia a leitura para todo mundo inscrito no device_id.
        Conexão fechada ou que dá erro no envio é só pulada; quem remove é o
        unsubscribe_all, chamado quando o socket fecha.
        Retorna quantas entregas deram certo.
        """
        entregues = 0
        for ws in self.assinantes(device_id):
            # pode ter desconectado enquanto esperávamos o envio anterior
            if ws not in self._por_device.get(device_id, {}):
                continue
            if not conexao_aberta(ws):
                continue
            try:
                await ws.send_json(leitura)
                entregues += 1
            except Exception as e:
                logger.warning("Falha ao enviar leitura de %s para um WebSocket: %s", device_id, e)
        return entregues
