import asyncio
import json
import logging
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from firemonitor.core.config import settings
from firemonitor.core.errors import ReadingValidationError, StoreUnavailable
from firemonitor.services.ingestao import IngestionPipeline

logger = logging.getLogger(__name__)

# ---- Config vindo do settings ----
MQTT_BROKER_HOST = settings.MQTT_BROKER_HOST
MQTT_BROKER_PORT = settings.MQTT_BROKER_PORT
MQTT_TOPIC_ROOT = settings.MQTT_TOPIC_ROOT
MQTT_USERNAME = settings.MQTT_USERNAME
MQTT_PASSWORD = settings.MQTT_PASSWORD

SUFIXO_TELEMETRIA = "telemetria"

_mqtt_client: Optional[mqtt.Client] = None


# ========= Parsing =========

def extrair_leitura_mqtt(topic: str, payload_raw: str, topic_root: str = MQTT_TOPIC_ROOT) -> Optional[Dict[str, Any]]:
    """
    Converte uma mensagem MQTT no mesmo corpo do POST /data.

    Ex.: topic 'esp32/esp32-sala/telemetria', payload '{"temperature": 24.1, "smoke": 3}'
         -> {"deviceId": "esp32-sala", "temperature": 24.1, "smoke": 3}

    Retorna None para tópicos que não são de telemetria ou payload que não é
    um objeto JSON. Se o payload já trouxer deviceId, ele vale.
    """
    prefixo = topic_root.rstrip("/") + "/"
    if not topic.startswith(prefixo):
        return None

    partes = topic[len(prefixo):].split("/")
    if len(partes) != 2 or partes[1] != SUFIXO_TELEMETRIA or not partes[0]:
        return None

    try:
        dados = json.loads(payload_raw)
    except json.JSONDecodeError:
        logger.warning("[MQTT-INGESTOR] Payload de telemetria inválido em %s: %r", topic, payload_raw)
        return None

    if not isinstance(dados, dict):
        logger.warning("[MQTT-INGESTOR] Payload de telemetria não é um objeto em %s: %r", topic, payload_raw)
        return None

    dados.setdefault("deviceId", partes[0])
    return dados


# ========= Callbacks MQTT =========

def _on_connect(client: mqtt.Client, userdata, flags, reason_code, properties=None):
    if reason_code.is_failure:
        logger.error("[MQTT-INGESTOR] Falha na conexão. rc=%s", reason_code)
        return
    topic = f"{MQTT_TOPIC_ROOT}/+/{SUFIXO_TELEMETRIA}"
    logger.info("[MQTT-INGESTOR] Conectado ao broker. Assinando: %s", topic)
    client.subscribe(topic)


def _on_message(client: mqtt.Client, userdata, msg: mqtt.MQTTMessage):
    payload_raw = msg.payload.decode(errors="ignore").strip()
    dados = extrair_leitura_mqtt(msg.topic, payload_raw)
    if dados is None:
        return

    pipeline: IngestionPipeline = userdata["pipeline"]
    loop: asyncio.AbstractEventLoop = userdata["loop"]

    # callback roda na thread do paho; a ingestão precisa rodar no event loop
    futuro = asyncio.run_coroutine_threadsafe(pipeline.processar(dados), loop)
    futuro.add_done_callback(lambda f: _registrar_resultado(msg.topic, f))


def _registrar_resultado(topic: str, futuro) -> None:
    try:
        futuro.result()
    except ReadingValidationError as e:
        logger.warning("[MQTT-INGESTOR] Leitura inválida em %s: %s", topic, e)
    except StoreUnavailable as e:
        logger.error("[MQTT-INGESTOR] Leitura de %s não gravada: %s", topic, e)
    except Exception:
        logger.exception("[MQTT-INGESTOR] Erro ao processar %s", topic)


# ========= Inicialização do ingestor =========

def start_mqtt_ingestor(pipeline: IngestionPipeline, loop: asyncio.AbstractEventLoop) -> Optional[mqtt.Client]:
    """
    Cria o cliente MQTT, conecta ao broker e inicia o loop em thread própria
    (loop_start). Sem MQTT_BROKER_HOST configurado não faz nada.
    Deve ser chamado no startup do FastAPI.
    """
    global _mqtt_client
    if _mqtt_client is not None:
        # já foi inicializado
        return _mqtt_client

    if not MQTT_BROKER_HOST:
        logger.info("[MQTT-INGESTOR] MQTT_BROKER_HOST não definido; ingestão via MQTT desativada.")
        return None

    client = mqtt.Client(
        mqtt.CallbackAPIVersion.VERSION2,
        client_id="BACKEND-FIREMONITOR-INGESTOR",
        clean_session=True,
        userdata={"pipeline": pipeline, "loop": loop},
    )

    if MQTT_USERNAME:
        client.username_pw_set(MQTT_USERNAME, MQTT_PASSWORD or "")

    client.on_connect = _on_connect
    client.on_message = _on_message

    logger.info("[MQTT-INGESTOR] Conectando em %s:%s ...", MQTT_BROKER_HOST, MQTT_BROKER_PORT)
    client.connect_async(MQTT_BROKER_HOST, MQTT_BROKER_PORT, keepalive=60)
    client.loop_start()

    _mqtt_client = client
    return client


def stop_mqtt_ingestor() -> None:
    global _mqtt_client
    if _mqtt_client is None:
        return
    _mqtt_client.disconnect()
    _mqtt_client.loop_stop()
    _mqtt_client = None
    logger.info("[MQTT-INGESTOR] Ingestor MQTT parado.")
