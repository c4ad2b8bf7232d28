import logging
from typing import Any, Dict, Optional, Protocol

import requests

from firemonitor.core.config import Settings
from firemonitor.core.errors import DispatchError

logger = logging.getLogger(__name__)

TITULO_ALERTA = "🔥 Alerta de incêndio"


class PushProvider(Protocol):
    def send(self, token: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Envia uma notificação. Levanta DispatchError se o provedor falhar."""
        ...


class ExpoPushProvider:
    """
    Cliente do Expo push (https://exp.host/--/api/v2/push/send).
    Chamada bloqueante: quem está no event loop deve rodar via threadpool.
    """

    def __init__(self, access_token: str, url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token}",
        })

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExpoPushProvider":
        return cls(
            access_token=settings.EXPO_ACCESS_TOKEN,
            url=settings.EXPO_PUSH_URL,
            timeout=settings.PUSH_TIMEOUT_SECONDS,
        )

    def send(self, token: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> None:
        mensagem = {
            "to": token,
            "sound": "default",
            "title": title,
            "body": body,
            "data": data or {},
        }
        try:
            resp = self.session.post(self.url, json=mensagem, timeout=self.timeout)
            resp.raise_for_status()
            ticket = resp.json().get("data", {})
        except requests.RequestException as e:
            raise DispatchError(token, str(e)) from e
        except ValueError as e:
            raise DispatchError(token, f"resposta inválida do Expo: {e}") from e

        # o Expo devolve 200 mesmo quando o token é inválido; o erro vem no ticket
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") == "error":
            detalhe = (ticket.get("details") or {}).get("error")
            raise DispatchError(token, ticket.get("message") or detalhe or "erro desconhecido")

        logger.debug("Push enviado para %s (ticket %s)", token, ticket.get("id"))
