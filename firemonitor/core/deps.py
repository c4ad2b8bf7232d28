from starlette.requests import HTTPConnection

from firemonitor.db.session import SessionLocal
from firemonitor.services.assinaturas import SubscriptionTable
from firemonitor.services.ingestao import IngestionPipeline

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# HTTPConnection serve tanto para rotas HTTP quanto WebSocket
def get_subscriptions(conn: HTTPConnection) -> SubscriptionTable:
    return conn.app.state.subscriptions

def get_pipeline(conn: HTTPConnection) -> IngestionPipeline:
    return conn.app.state.pipeline
