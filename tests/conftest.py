import os
import tempfile
import time

# precisa vir antes de qualquer import do firemonitor: o Settings é lido no import
_tmp = tempfile.mkdtemp(prefix="firemonitor-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp}/test.db"
os.environ["EXPO_ACCESS_TOKEN"] = "expo-test-token"
os.environ["CLEANUP_ENABLED"] = "false"
os.environ.pop("MQTT_BROKER_HOST", None)

import pytest
from fastapi.testclient import TestClient

from firemonitor.core.errors import DispatchError
from firemonitor.db.base import Base
from firemonitor.db.init_db import init_db
from firemonitor.db.session import SessionLocal, engine
from firemonitor.main import create_app
from starlette.websockets import WebSocketState


class FakePush:
    """Provedor de push que só anota o que seria enviado."""

    def __init__(self, falhar_para=()):
        self.enviados = []
        self.falhar_para = set(falhar_para)

    def send(self, token, title, body, data=None):
        if token in self.falhar_para:
            raise DispatchError(token, "DeviceNotRegistered")
        self.enviados.append({"token": token, "title": title, "body": body, "data": data or {}})

    def tipos_para(self, token):
        return [e["data"]["type"] for e in self.enviados if e["token"] == token]


class FakeConexao:
    """Imita o pedaço do WebSocket que o SubscriptionTable usa."""

    def __init__(self, nome="ws", aberta=True, quebrada=False):
        self.nome = nome
        self.recebidas = []
        self.quebrada = quebrada
        estado = WebSocketState.CONNECTED if aberta else WebSocketState.DISCONNECTED
        self.client_state = estado
        self.application_state = estado

    def fechar(self):
        self.client_state = WebSocketState.DISCONNECTED

    async def send_json(self, dados):
        if self.quebrada:
            raise RuntimeError("socket quebrado")
        self.recebidas.append(dados)


def esperar(condicao, timeout=2.0):
    limite = time.monotonic() + timeout
    while time.monotonic() < limite:
        if condicao():
            return True
        time.sleep(0.01)
    return condicao()


@pytest.fixture(autouse=True)
def banco():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def push():
    return FakePush()


@pytest.fixture
def app(push):
    return create_app(push_provider=push)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
