"""
Exceções do domínio.

- ReadingValidationError: leitura sem deviceId/temperature/smoke ou com tipos errados
- StoreUnavailable: banco fora do ar ou operação falhou (requisição abortada, 500)
- DispatchError: o provedor de push recusou/falhou um envio (só vai pro log)
- ProtocolError: mensagem inválida vinda de um WebSocket (só vai pro log)
"""


class ReadingValidationError(ValueError):
    pass


class StoreUnavailable(RuntimeError):
    pass


class DispatchError(RuntimeError):
    def __init__(self, token: str, motivo: str):
        super().__init__(f"Falha ao enviar push para {token}: {motivo}")
        self.token = token
        self.motivo = motivo


class ProtocolError(ValueError):
    pass
