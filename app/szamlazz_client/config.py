"""
Configuración para cliente Számlázz.hu
"""
import os
from typing import Optional, Union

from dotenv import find_dotenv, load_dotenv

from .exceptions import SzamlazzValidationError


DEFAULT_BASE_URL = "https://www.szamlazz.hu/szamla/"

RESPONSE_VERSIONS = (1, 2)


def _is_filled(value: Optional[str]) -> bool:
    return isinstance(value, str) and len(value.strip()) > 1


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "si", "on")


class SzamlazzConfig:
    """
    Configuración del Agente Számlázz.hu

    Dos modos de credenciales, mutuamente excluyentes:
    - clave de agente (auth_token, elemento szamlaagentkulcs)
    - usuario + contraseña (felhasznalo / jelszo)
    Si hay token válido, se usa el token.
    """

    def __init__(
        self,
        auth_token: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        e_invoice: bool = False,
        request_invoice_download: bool = False,
        downloaded_invoice_count: int = 1,
        response_version: int = 1,
        timeout: Union[int, float] = 0,
        base_url: str = DEFAULT_BASE_URL,
    ):
        """
        Args:
            auth_token: Clave de agente (szamlaagentkulcs)
            user: Usuario (si no hay token)
            password: Contraseña (si no hay token)
            e_invoice: Emitir factura electrónica (eszamla)
            request_invoice_download: Pedir el PDF en la respuesta (szamlaLetoltes)
            downloaded_invoice_count: Cantidad de copias del PDF (szamlaLetoltesPld)
            response_version: 1 = PDF crudo, 2 = XML con PDF en base64 (valaszVerzio)
            timeout: Timeout por request en segundos (0 = sin timeout)
            base_url: Endpoint del agente
        """
        self.use_token = _is_filled(auth_token)

        if not self.use_token:
            if not _is_filled(user):
                raise SzamlazzValidationError("Falta un usuario válido en la configuración del cliente")
            if not _is_filled(password):
                raise SzamlazzValidationError("Falta una contraseña válida en la configuración del cliente")

        if response_version not in RESPONSE_VERSIONS:
            raise SzamlazzValidationError(
                f"response_version inválida: {response_version!r}. Debe ser 1 o 2"
            )

        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0:
            raise SzamlazzValidationError(f"timeout inválido: {timeout!r}")

        self.auth_token = auth_token if self.use_token else None
        self.user = None if self.use_token else user
        self.password = None if self.use_token else password

        self.e_invoice = bool(e_invoice)
        self.request_invoice_download = bool(request_invoice_download)
        self.downloaded_invoice_count = int(downloaded_invoice_count)
        self.response_version = response_version
        self.timeout = timeout
        self.base_url = base_url

    @property
    def request_timeout(self) -> Optional[float]:
        """Timeout para requests (None si está deshabilitado)"""
        return self.timeout or None

    def __repr__(self) -> str:
        mode = "token" if self.use_token else "user/password"
        return (
            f"SzamlazzConfig(mode={mode!r}, e_invoice={self.e_invoice}, "
            f"request_invoice_download={self.request_invoice_download}, "
            f"response_version={self.response_version}, timeout={self.timeout})"
        )


def get_szamlazz_config(dotenv_path: Optional[str] = None, **overrides) -> SzamlazzConfig:
    """
    Obtiene la configuración desde variables de entorno (y .env si existe)

    Los argumentos explícitos tienen prioridad sobre el entorno. Sin
    dotenv_path se busca un .env desde el directorio actual hacia arriba.

    Returns:
        Configuración Számlázz.hu
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True))

    values = {
        "auth_token": os.getenv("SZAMLAZZ_AUTH_TOKEN"),
        "user": os.getenv("SZAMLAZZ_USER"),
        "password": os.getenv("SZAMLAZZ_PASSWORD"),
        "e_invoice": _env_bool("SZAMLAZZ_E_INVOICE"),
        "request_invoice_download": _env_bool("SZAMLAZZ_REQUEST_INVOICE_DOWNLOAD"),
        "downloaded_invoice_count": int(os.getenv("SZAMLAZZ_DOWNLOADED_INVOICE_COUNT", "1")),
        "response_version": int(os.getenv("SZAMLAZZ_RESPONSE_VERSION", "1")),
        "timeout": float(os.getenv("SZAMLAZZ_TIMEOUT", "0")),
        "base_url": os.getenv("SZAMLAZZ_BASE_URL", DEFAULT_BASE_URL),
    }
    values.update(overrides)

    return SzamlazzConfig(**values)
