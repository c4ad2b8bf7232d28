from firemonitor.db.base import Base
from firemonitor.db.session import engine

# Importações obrigatórias para registro dos modelos no metadata
from firemonitor.models.leitura import Leitura  # noqa: F401
from firemonitor.models.config_dispositivo import ConfigDispositivo  # noqa: F401

def init_db():
    Base.metadata.create_all(bind=engine)
