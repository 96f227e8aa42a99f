"""
Excepciones personalizadas para el cliente Számlázz.hu
"""
from typing import Optional


class SzamlazzException(Exception):
    """Excepción base para errores del Agente Számlázz.hu"""
    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class SzamlazzValidationError(SzamlazzException):
    """Error de validación de parámetros (se detecta antes de enviar)"""
    pass


class SzamlazzTransportError(SzamlazzException):
    """Error HTTP (status != 200), timeout o fallo de conexión"""
    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        status_text: Optional[str] = None,
    ):
        self.http_status = http_status
        self.status_text = status_text
        super().__init__(message)


class SzamlazzServiceError(SzamlazzException):
    """Error informado por el servicio (header szlahu_error_code o nodo hibakod)"""
    def __init__(self, message: str, code: str):
        super().__init__(message, code)


class SzamlazzParseError(SzamlazzException):
    """Respuesta XML mal formada o sin el nodo esperado"""
    pass
