from sqlalchemy import Column, Float, Integer, String, DateTime
from datetime import datetime, timezone
from firemonitor.db.base import Base


def agora_utc() -> datetime:
    # o banco guarda DateTime sem timezone, sempre em UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Leitura(Base):
    __tablename__ = "leituras"

    id = Column(Integer, primary_key=True, autoincrement=True)

    device_id = Column(String, nullable=False, index=True)
    temperatura = Column(Float, nullable=False)
    fumaca = Column(Float, nullable=False)                 # ppm

    timestamp = Column(DateTime, default=agora_utc, nullable=False, index=True)
