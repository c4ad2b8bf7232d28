from sqlalchemy import Column, String, Float, Boolean, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB
from firemonitor.db.base import Base
from firemonitor.models.leitura import agora_utc

class ConfigDispositivo(Base):
    __tablename__ = "configuracoes_dispositivo"

    device_id = Column(String, primary_key=True)

    # um token de push pertence a no máximo um dispositivo
    push_token = Column(String, nullable=True, unique=True, index=True)

    limite_fumaca = Column(Float, nullable=True)         # None = nunca dispara
    limite_temperatura = Column(Float, nullable=True)
    notificacoes_ativas = Column(Boolean, default=True, nullable=False)

    # campos de provisionamento que o app manda e a gente só guarda
    extras = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)

    criado_em = Column(DateTime, default=agora_utc)
    atualizado_em = Column(DateTime, default=agora_utc, onupdate=agora_utc)
