import json
import logging

from fastapi import APIRouter, Depends, WebSocket

from firemonitor.core.deps import get_subscriptions
from firemonitor.core.errors import ProtocolError
from firemonitor.schemas.leitura import normalizar_device_id
from firemonitor.services.assinaturas import SubscriptionTable

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


def interpretar_mensagem(texto: str) -> str:
    """
    Único comando aceito: {"action": "subscribe", "deviceId": "..."}.
    Devolve o deviceId ou levanta ProtocolError.
    """
    try:
        msg = json.loads(texto)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"JSON inválido: {e}") from e

    if not isinstance(msg, dict):
        raise ProtocolError("mensagem precisa ser um objeto JSON")
    if msg.get("action") != "subscribe":
        raise ProtocolError(f"ação não suportada: {msg.get('action')!r}")

    device_id = normalizar_device_id(msg.get("deviceId"))
    if not isinstance(device_id, str) or not device_id:
        raise ProtocolError("deviceId ausente")
    return device_id


@router.websocket("/")
@router.websocket("/ws")
async def telemetria_ao_vivo(
    websocket: WebSocket,
    subscriptions: SubscriptionTable = Depends(get_subscriptions),
):
    await websocket.accept()
    logger.info("Cliente conectado via WebSocket")

    try:
        while True:
            mensagem = await websocket.receive()
            if mensagem["type"] == "websocket.disconnect":
                break

            texto = mensagem.get("text")
            if texto is None:
                texto = (mensagem.get("bytes") or b"").decode(errors="ignore")

            try:
                device_id = interpretar_mensagem(texto)
            except ProtocolError as e:
                # mensagem ruim não derruba a conexão
                logger.warning("Mensagem WebSocket inválida: %s", e)
                continue

            subscriptions.subscribe(websocket, device_id)
            logger.info("Cliente inscrito no dispositivo %s", device_id)
    finally:
        devices = subscriptions.devices_de(websocket)
        subscriptions.unsubscribe_all(websocket)
        logger.info(
            "Cliente WebSocket desconectado (inscrito em %d dispositivo(s)); %d conexão(ões) ativas",
            len(devices), subscriptions.total_conexoes(),
        )
