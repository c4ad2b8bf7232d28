import asyncio
import logging
import threading

import pytest
from conftest import FakeConexao, FakePush, esperar

from firemonitor.core.errors import StoreUnavailable
from firemonitor.db.session import SessionLocal
from firemonitor.models.leitura import Leitura
from firemonitor.services.assinaturas import SubscriptionTable
from firemonitor.services.ingestao import IngestionPipeline
from firemonitor.services.mqtt_ingestor import _on_message, extrair_leitura_mqtt


def test_topico_de_telemetria_vira_corpo_do_post():
    dados = extrair_leitura_mqtt("esp32/esp32-sala/telemetria", '{"temperature": 24.1, "smoke": 3}', "esp32")
    assert dados == {"deviceId": "esp32-sala", "temperature": 24.1, "smoke": 3}


def test_device_id_do_payload_tem_prioridade():
    dados = extrair_leitura_mqtt("esp32/x/telemetria", '{"deviceId": "real", "temperature": 1, "smoke": 2}', "esp32")
    assert dados["deviceId"] == "real"


def test_topicos_que_nao_sao_telemetria_sao_ignorados():
    assert extrair_leitura_mqtt("esp32/sala/status", '{"temperature": 1}', "esp32") is None
    assert extrair_leitura_mqtt("outra-raiz/sala/telemetria", '{"temperature": 1}', "esp32") is None
    assert extrair_leitura_mqtt("esp32/telemetria", '{"temperature": 1}', "esp32") is None
    assert extrair_leitura_mqtt("esp32/a/b/telemetria", '{"temperature": 1}', "esp32") is None


def test_payload_invalido_e_descartado():
    assert extrair_leitura_mqtt("esp32/sala/telemetria", "24.1;3", "esp32") is None
    assert extrair_leitura_mqtt("esp32/sala/telemetria", "[1, 2]", "esp32") is None


class MensagemFalsa:
    def __init__(self, topic, payload):
        self.topic = topic
        self.payload = payload.encode()


@pytest.fixture
def loop_em_thread():
    # o paho chama _on_message na thread de rede dele; o event loop roda em outra
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    yield loop
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=2)
    loop.close()


@pytest.fixture
def userdata(loop_em_thread):
    tabela = SubscriptionTable()
    pipeline = IngestionPipeline(
        session_factory=SessionLocal,
        subscriptions=tabela,
        push_provider=FakePush(),
    )
    return {"pipeline": pipeline, "loop": loop_em_thread, "tabela": tabela}


def test_mensagem_mqtt_entra_no_mesmo_pipeline(userdata, db):
    ws = FakeConexao()
    userdata["tabela"].subscribe(ws, "esp32-sala")

    _on_message(None, userdata, MensagemFalsa("esp32/esp32-sala/telemetria", '{"temperature": 24.5, "smoke": 3}'))

    assert esperar(lambda: ws.recebidas)
    assert ws.recebidas[0]["deviceId"] == "esp32-sala"
    leitura = db.query(Leitura).one()
    assert (leitura.device_id, leitura.temperatura, leitura.fumaca) == ("esp32-sala", 24.5, 3.0)


def test_payload_mqtt_malformado_e_descartado_sem_erro(userdata, db):
    _on_message(None, userdata, MensagemFalsa("esp32/sala/telemetria", "isso não é json"))
    _on_message(None, userdata, MensagemFalsa("esp32/sala/status", '{"temperature": 1, "smoke": 1}'))

    assert db.query(Leitura).count() == 0


def test_leitura_mqtt_invalida_vai_para_o_log(userdata, db, caplog):
    caplog.set_level(logging.WARNING, logger="firemonitor.services.mqtt_ingestor")

    _on_message(None, userdata, MensagemFalsa("esp32/sala/telemetria", '{"temperature": NaN, "smoke": 1}'))

    assert esperar(lambda: "Leitura inválida" in caplog.text)
    assert db.query(Leitura).count() == 0


def test_falha_no_banco_via_mqtt_vai_para_o_log(userdata, caplog, monkeypatch):
    caplog.set_level(logging.ERROR, logger="firemonitor.services.mqtt_ingestor")

    def banco_fora(db, dados):
        raise StoreUnavailable("banco fora do ar")

    monkeypatch.setattr("firemonitor.services.ingestao.salvar_leitura", banco_fora)
    _on_message(None, userdata, MensagemFalsa("esp32/sala/telemetria", '{"temperature": 20, "smoke": 1}'))

    assert esperar(lambda: "não gravada" in caplog.text)
