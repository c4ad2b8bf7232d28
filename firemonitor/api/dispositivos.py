from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from firemonitor.core.deps import get_db
from firemonitor.schemas.dispositivo import ConfigDispositivoIn, ConfigDispositivoOut
from firemonitor.schemas.leitura import MensagemOut, normalizar_device_id
from firemonitor.services.dispositivo_service import obter_config, registrar_config

router = APIRouter(tags=["dispositivos"])


@router.post("/register-token", response_model=MensagemOut)
def registrar_token(dados: ConfigDispositivoIn, db: Session = Depends(get_db)):
    """
    Registra (ou substitui) a config de alerta de um dispositivo.
    Chave é o deviceId; se o token estava com outro dispositivo, muda de dono.
    """
    dados.device_id = normalizar_device_id(dados.device_id or "")
    dados.token = (dados.token or "").strip()
    if not dados.device_id or not dados.token:
        raise HTTPException(status_code=400, detail="Campos 'deviceId' e 'token' são obrigatórios.")

    registrar_config(db, dados)
    return {"message": "Token e configurações registrados com sucesso"}


@router.get("/settings/{device_id}", response_model=ConfigDispositivoOut)
def obter_configuracoes(device_id: str, db: Session = Depends(get_db)):
    config = obter_config(db, normalizar_device_id(device_id))
    if not config:
        raise HTTPException(status_code=404, detail="Dispositivo não encontrado.")
    return ConfigDispositivoOut.do_modelo(config)
