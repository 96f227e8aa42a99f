"""
Transporte HTTP para el Agente Számlázz.hu

Cada operación es un único POST multipart con un solo campo (la acción del
agente) que lleva el documento XML como archivo request.xml. La sesión
requests mantiene las cookies entre llamadas del mismo cliente.

Escalado de errores, en orden fijo:
1. status HTTP != 200 -> SzamlazzTransportError
2. header szlahu_error_code -> SzamlazzServiceError (aunque el status sea 200)
3. si la respuesta es XML: nodo xmlszamlavalasz/hibakod -> SzamlazzServiceError
"""
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union
from urllib.parse import unquote_plus

import requests
from requests import Session

from .config import SzamlazzConfig
from .exceptions import SzamlazzServiceError, SzamlazzTransportError
from .xml_parser import ParsedDocument, first, parse_xml_string

logger = logging.getLogger(__name__)

REQUEST_FILENAME = "request.xml"
REQUEST_CONTENT_TYPE = "text/xml"

HEADER_ERROR_CODE = "szlahu_error_code"
HEADER_ERROR_MESSAGE = "szlahu_error"

# Acciones cuya respuesta exitosa es texto plano (no XML)
PLAIN_TEXT_ACTIONS = frozenset({"action-szamla_agent_kifiz"})


@dataclass
class RawResponse:
    """Respuesta HTTP ya verificada (sin errores de transporte ni de servicio)"""
    status: int
    status_text: str
    headers: Mapping[str, str]
    body: Union[str, bytes]
    document: Optional[ParsedDocument] = None


def decode_error_message(raw: Optional[str]) -> str:
    """Mensaje de error del header: URL-encoded, '+' es espacio"""
    return unquote_plus(raw or "")


def check_header_error(headers: Mapping[str, str]) -> None:
    code = headers.get(HEADER_ERROR_CODE)
    if code:
        message = decode_error_message(headers.get(HEADER_ERROR_MESSAGE))
        logger.warning(f"Error del agente (header) código={code}: {message}")
        raise SzamlazzServiceError(message, code)


def check_document_error(document: ParsedDocument) -> None:
    answer = first(document.get("xmlszamlavalasz"))
    if not isinstance(answer, dict) or not answer.get("hibakod"):
        return
    code = first(answer["hibakod"])
    message = first(answer.get("hibauzenet"), "")
    logger.warning(f"Error del agente (XML) código={code}: {message}")
    raise SzamlazzServiceError(message, code)


class SzamlazzTransport:
    """Sesión HTTP autenticada contra el Agente"""

    def __init__(self, config: SzamlazzConfig, session: Optional[Session] = None):
        self.config = config
        self.session = session if session is not None else requests.Session()

    @property
    def cookies(self) -> Any:
        return self.session.cookies

    def send(self, field_name: str, document: str, expect_binary: bool = False) -> RawResponse:
        """
        Envía el documento XML y devuelve la respuesta verificada

        Args:
            field_name: Nombre del campo multipart (acción del agente)
            document: Documento XML completo
            expect_binary: Si True, el body se devuelve como bytes (PDF)

        Returns:
            RawResponse con el documento ya parseado cuando corresponde

        Raises:
            SzamlazzTransportError: Timeout, error de conexión o status != 200
            SzamlazzServiceError: Error informado por header o nodo hibakod
            SzamlazzParseError: Body no es XML válido cuando se esperaba XML
        """
        url = self.config.base_url
        files = {field_name: (REQUEST_FILENAME, document.encode("utf-8"), REQUEST_CONTENT_TYPE)}

        logger.info(f"Enviando {field_name} a {url}")
        try:
            response = self.session.post(url, files=files, timeout=self.config.request_timeout)
        except requests.Timeout as exc:
            raise SzamlazzTransportError(
                f"Timeout: la petición excedió {self.config.timeout} segundos"
            ) from exc
        except requests.RequestException as exc:
            raise SzamlazzTransportError(f"Error de conexión: {exc}") from exc

        status_text = getattr(response, "reason", "") or ""
        logger.debug(f"Respuesta {field_name}: status={response.status_code}, len={len(response.content)}")

        if response.status_code != 200:
            raise SzamlazzTransportError(
                f"{response.status_code} {status_text}".strip(),
                http_status=response.status_code,
                status_text=status_text,
            )

        headers = response.headers
        check_header_error(headers)

        if expect_binary:
            return RawResponse(response.status_code, status_text, headers, response.content)

        if field_name in PLAIN_TEXT_ACTIONS:
            body = response.content.decode("utf-8", errors="replace")
            return RawResponse(response.status_code, status_text, headers, body)

        # bytes: lxml respeta el encoding declarado y rechaza secuencias inválidas
        parsed = parse_xml_string(response.content)
        check_document_error(parsed)
        body = response.content.decode("utf-8", errors="replace")
        return RawResponse(response.status_code, status_text, headers, body, parsed)

    def close(self) -> None:
        self.session.close()
