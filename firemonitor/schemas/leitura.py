from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from firemonitor.models.leitura import Leitura


def normalizar_device_id(valor: Any) -> Any:
    """Mesma forma canônica do deviceId em todo lugar: sem espaços nas pontas."""
    return valor.strip() if isinstance(valor, str) else valor


class LeituraIn(BaseModel):
    """
    Corpo enviado pelo ESP32 em POST /data (e payload do MQTT).
    ex.: {"deviceId": "esp32-sala", "temperature": 24.5, "smoke": 3}
    """
    device_id: str = Field(..., alias="deviceId", min_length=1)
    temperature: float = Field(..., allow_inf_nan=False)
    smoke: float = Field(..., allow_inf_nan=False)

    class Config:
        populate_by_name = True

    @field_validator("device_id", mode="before")
    @classmethod
    def _normalizar(cls, v):
        return normalizar_device_id(v)


class LeituraOut(BaseModel):
    id: int
    device_id: str = Field(..., alias="deviceId")
    temperature: float
    smoke: float
    timestamp: datetime

    class Config:
        populate_by_name = True

    @classmethod
    def do_modelo(cls, leitura: Leitura) -> "LeituraOut":
        ts = leitura.timestamp
        if ts is not None and ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return cls(
            id=leitura.id,
            device_id=leitura.device_id,
            temperature=leitura.temperatura,
            smoke=leitura.fumaca,
            timestamp=ts,
        )

    def para_json(self) -> Dict[str, Any]:
        """Formato que vai cru para os WebSockets (sem envelope)."""
        return self.model_dump(mode="json", by_alias=True)


class MensagemOut(BaseModel):
    message: str
