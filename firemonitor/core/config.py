from pydantic import Field
from pydantic_settings import BaseSettings
from typing import List, Literal, Optional

class Settings(BaseSettings):
    DATABASE_URL: str

    # credencial do Expo push: sem ela o processo nem sobe
    EXPO_ACCESS_TOKEN: str = Field(..., min_length=1)
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    PUSH_TIMEOUT_SECONDS: float = 10.0

    # "device" = só as configs do próprio deviceId, "all" = todas as habilitadas
    ALERT_SCOPE: Literal["device", "all"] = "device"
    ALERT_EXCLUDE_ORIGIN: bool = False

    RETENTION_HOURS: int = 24
    CLEANUP_HOUR: int = Field(0, ge=0, le=23)  # hora UTC da limpeza diária
    CLEANUP_ENABLED: bool = True

    MQTT_BROKER_HOST: Optional[str] = None
    MQTT_BROKER_PORT: int = 1883
    MQTT_TOPIC_ROOT: str = "esp32"
    MQTT_USERNAME: Optional[str] = None
    MQTT_PASSWORD: Optional[str] = None

    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
