import asyncio
from datetime import datetime, timedelta

from firemonitor.db.session import SessionLocal
from firemonitor.models.leitura import Leitura, agora_utc
from firemonitor.services.limpeza import RetentionScheduler, limpar_leituras_antigas, segundos_ate_proxima_execucao

AGORA = datetime(2026, 10, 18, 0, 0, 0)
DIA = timedelta(hours=24)


def inserir(db, device_id, timestamp):
    db.add(Leitura(device_id=device_id, temperatura=20, fumaca=1, timestamp=timestamp))
    db.commit()


def test_limpeza_remove_so_o_que_passou_de_24h(db):
    inserir(db, "velha", AGORA - DIA - timedelta(seconds=1))
    inserir(db, "limite", AGORA - DIA)
    inserir(db, "nova", AGORA - DIA + timedelta(seconds=1))

    apagadas = limpar_leituras_antigas(SessionLocal, agora=AGORA)

    assert apagadas == 1
    restantes = sorted(l.device_id for l in db.query(Leitura).all())
    assert restantes == ["limite", "nova"]


def test_limpeza_repetida_e_idempotente(db):
    inserir(db, "velha", AGORA - timedelta(days=3))

    assert limpar_leituras_antigas(SessionLocal, agora=AGORA) == 1
    assert limpar_leituras_antigas(SessionLocal, agora=AGORA) == 0
    assert db.query(Leitura).count() == 0


def test_scheduler_executa_uma_limpeza(db):
    inserir(db, "velha", agora_utc() - timedelta(days=2))
    inserir(db, "nova", agora_utc())

    apagadas = asyncio.run(RetentionScheduler(SessionLocal, hora=0, retencao_horas=24).executar_uma_vez())

    assert apagadas == 1
    assert [l.device_id for l in db.query(Leitura).all()] == ["nova"]


def test_scheduler_start_e_stop():
    async def cenario():
        agendador = RetentionScheduler(SessionLocal, hora=3)
        agendador.start()
        assert agendador._task is not None and not agendador._task.done()
        await agendador.stop()
        assert agendador._task is None

    asyncio.run(cenario())


def test_segundos_ate_proxima_execucao():
    assert segundos_ate_proxima_execucao(datetime(2026, 10, 18, 23, 0, 0), 0) == 3600
    assert segundos_ate_proxima_execucao(datetime(2026, 10, 18, 10, 30, 0), 12) == 5400
    # exatamente na hora: a execução de hoje já passou, vai para amanhã
    assert segundos_ate_proxima_execucao(datetime(2026, 10, 18, 0, 0, 0), 0) == 86400
