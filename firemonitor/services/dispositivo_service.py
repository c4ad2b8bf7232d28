from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from firemonitor.core.errors import StoreUnavailable
from firemonitor.models.config_dispositivo import ConfigDispositivo
from firemonitor.schemas.dispositivo import ConfigDispositivoIn


def registrar_config(db: Session, dados: ConfigDispositivoIn) -> ConfigDispositivo:
    """
    Upsert da config pelo deviceId (última escrita vence).

    Se o token já estava com outro dispositivo, ele sai de lá antes:
    a config antiga continua existindo, só que sem token.
    """
    try:
        antigos = (
            db.query(ConfigDispositivo)
            .filter(
                ConfigDispositivo.push_token == dados.token,
                ConfigDispositivo.device_id != dados.device_id,
            )
            .all()
        )
        for antigo in antigos:
            antigo.push_token = None
        if antigos:
            # libera o unique do token antes de gravar o novo dono
            db.flush()

        config = db.get(ConfigDispositivo, dados.device_id)
        if config is None:
            config = ConfigDispositivo(device_id=dados.device_id)
            db.add(config)

        config.push_token = dados.token
        config.limite_fumaca = dados.smoke_threshold
        config.limite_temperatura = dados.temp_threshold
        config.notificacoes_ativas = dados.notifications_enabled
        config.extras = dados.extras() or None

        db.commit()
        db.refresh(config)
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Falha ao registrar token: {e}") from e
    return config


def obter_config(db: Session, device_id: str) -> Optional[ConfigDispositivo]:
    try:
        return db.get(ConfigDispositivo, device_id)
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"Falha ao buscar configuração: {e}") from e


def listar_configs_elegiveis(db: Session, device_id: str, escopo: str = "device") -> List[ConfigDispositivo]:
    """
    escopo "device": só quem se registrou com o deviceId da leitura.
    escopo "all": todas as configs com notificação ligada.
    """
    try:
        q = db.query(ConfigDispositivo).filter(ConfigDispositivo.notificacoes_ativas == True)  # noqa: E712
        if escopo == "device":
            q = q.filter(ConfigDispositivo.device_id == device_id)
        return q.order_by(ConfigDispositivo.device_id).all()
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"Falha ao buscar configurações: {e}") from e
