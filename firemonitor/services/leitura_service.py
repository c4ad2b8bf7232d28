# firemonitor/services/leitura_service.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from firemonitor.core.errors import StoreUnavailable
from firemonitor.models.leitura import Leitura, agora_utc
from firemonitor.schemas.leitura import LeituraIn


def salvar_leitura(db: Session, dados: LeituraIn) -> Leitura:
    leitura = Leitura(
        device_id=dados.device_id,
        temperatura=dados.temperature,
        fumaca=dados.smoke,
        timestamp=agora_utc(),
    )
    try:
        db.add(leitura)
        db.commit()
        db.refresh(leitura)
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Falha ao salvar leitura: {e}") from e
    return leitura


def listar_leituras(db: Session, device_id: Optional[str] = None) -> List[Leitura]:
    try:
        q = db.query(Leitura)
        if device_id:
            q = q.filter(Leitura.device_id == device_id)
        return q.order_by(Leitura.timestamp.asc(), Leitura.id.asc()).all()
    except SQLAlchemyError as e:
        raise StoreUnavailable(f"Falha ao buscar leituras: {e}") from e


def excluir_leituras_antigas(db: Session, antes_de: datetime) -> int:
    """
    Apaga as leituras com timestamp estritamente anterior a `antes_de`.
    Rodar duas vezes (ou em paralelo) só faz a segunda apagar zero linhas.
    """
    try:
        apagadas = (
            db.query(Leitura)
            .filter(Leitura.timestamp < antes_de)
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"Falha ao limpar leituras antigas: {e}") from e
    return apagadas
