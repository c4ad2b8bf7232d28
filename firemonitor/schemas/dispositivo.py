import math
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from firemonitor.models.config_dispositivo import ConfigDispositivo


def numero_ou_none(valor: Any) -> Optional[float]:
    """
    Converte um limite vindo do app para float.
    Qualquer coisa que não seja um número finito vira None (limite nunca excedido).
    """
    if valor is None or isinstance(valor, bool):
        return None
    try:
        numero = float(valor)
    except (TypeError, ValueError):
        return None
    if math.isnan(numero) or math.isinf(numero):
        return None
    return numero


class ConfigDispositivoIn(BaseModel):
    # deviceId e token são opcionais aqui para a rota devolver 400 (e não 422)
    device_id: Optional[str] = Field(None, alias="deviceId")
    token: Optional[str] = None
    smoke_threshold: Optional[float] = Field(None, alias="smokeThreshold")
    temp_threshold: Optional[float] = Field(None, alias="tempThreshold")
    notifications_enabled: bool = Field(True, alias="notificationsEnabled")

    class Config:
        populate_by_name = True
        extra = "allow"  # campos de provisionamento vão para ConfigDispositivo.extras

    @field_validator("smoke_threshold", "temp_threshold", mode="before")
    @classmethod
    def _limite_tolerante(cls, v):
        return numero_ou_none(v)

    def extras(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class ConfigDispositivoOut(BaseModel):
    device_id: str = Field(..., alias="deviceId")
    token: Optional[str] = None
    smoke_threshold: Optional[float] = Field(None, alias="smokeThreshold")
    temp_threshold: Optional[float] = Field(None, alias="tempThreshold")
    notifications_enabled: bool = Field(True, alias="notificationsEnabled")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True
        extra = "allow"

    @classmethod
    def do_modelo(cls, config: ConfigDispositivo) -> "ConfigDispositivoOut":
        campos_fixos = {
            "deviceId", "token", "smokeThreshold", "tempThreshold",
            "notificationsEnabled", "updatedAt",
        } | set(cls.model_fields)
        extras = {k: v for k, v in (config.extras or {}).items() if k not in campos_fixos}
        return cls(
            device_id=config.device_id,
            token=config.push_token,
            smoke_threshold=config.limite_fumaca,
            temp_threshold=config.limite_temperatura,
            notifications_enabled=bool(config.notificacoes_ativas),
            updated_at=config.atualizado_em,
            **extras,
        )
