from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from firemonitor.core.config import settings

# SQLite (dev/testes) precisa liberar o uso da conexão fora da thread que a criou,
# porque as chamadas ao banco rodam no threadpool do Starlette
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
