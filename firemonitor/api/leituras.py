# firemonitor/api/leituras.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from firemonitor.core.deps import get_db, get_pipeline
from firemonitor.schemas.leitura import LeituraIn, LeituraOut, MensagemOut, normalizar_device_id
from firemonitor.services.ingestao import IngestionPipeline
from firemonitor.services.leitura_service import listar_leituras

router = APIRouter(prefix="/data", tags=["leituras"])


# Endpoint que recebe os dados do ESP32
@router.post("", response_model=MensagemOut)
async def receber_leitura(
    leitura: LeituraIn,
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    # StoreUnavailable vira 500 no handler do main; broadcast/push nunca derrubam a resposta
    await pipeline.processar(leitura)
    return {"message": "Leitura armazenada e enviada aos clientes WebSocket"}


@router.get("", response_model=List[LeituraOut])
def listar_todas(
    device_id: Optional[str] = Query(None, alias="deviceId", description="Filtra por dispositivo (opcional)"),
    db: Session = Depends(get_db),
):
    return [LeituraOut.do_modelo(l) for l in listar_leituras(db, normalizar_device_id(device_id))]


@router.get("/{device_id}", response_model=List[LeituraOut])
def listar_por_dispositivo(device_id: str, db: Session = Depends(get_db)):
    return [LeituraOut.do_modelo(l) for l in listar_leituras(db, normalizar_device_id(device_id))]
