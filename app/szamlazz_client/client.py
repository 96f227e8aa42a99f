"""
Cliente para el Agente de facturación Számlázz.hu

Cada operación arma el documento XML, lo envía por SzamlazzTransport y
decodifica la respuesta (headers szlahu_*, XML, o PDF crudo) a un resultado
tipado nuevo por llamada.
"""
import base64
import binascii
import logging
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from requests import Session

from .config import SzamlazzConfig
from .exceptions import SzamlazzParseError, SzamlazzValidationError
from .models import (
    CreditEntry,
    CreditEntryResult,
    InvoiceResult,
    TaxPayerAddress,
    TaxPayerResult,
)
from .transport import RawResponse, SzamlazzTransport
from .xml_builder import render, wrap_with_element, xml_footer, xml_header
from .xml_parser import first, project, strip_namespaces

logger = logging.getLogger(__name__)

ACTION_INVOICE_DATA = "action-szamla_agent_xml"
ACTION_REVERSE_INVOICE = "action-szamla_agent_st"
ACTION_ISSUE_INVOICE = "action-xmlagentxmlfile"
ACTION_TAXPAYER = "action-szamla_agent_taxpayer"
ACTION_CREDIT_ENTRY = "action-szamla_agent_kifiz"

HEADER_INVOICE_ID = "szlahu_szamlaszam"
HEADER_NET_TOTAL = "szlahu_nettovegosszeg"
HEADER_GROSS_TOTAL = "szlahu_bruttovegosszeg"
HEADER_CUSTOMER_ACCOUNT_URL = "szlahu_vevoifiokurl"

TAXPAYER_ID_RE = re.compile(r"^[0-9]{8}$")

# Ruta del PDF en la respuesta valaszVerzio=2
PDF_PATH = {"xmlszamlavalasz.pdf": "pdf"}


def _is_filled(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 1


def _first_node(values: Any) -> Dict[str, Any]:
    node = first(values)
    return node if isinstance(node, dict) else {}


def _leaf(values: Any) -> Optional[str]:
    # hoja vacía y hoja ausente dan None
    return first(values) or None


class SzamlazzClient:
    """
    Cliente del Agente Számlázz.hu

    Uso:
        config = SzamlazzConfig(auth_token="...")
        with SzamlazzClient(config) as client:
            result = client.issue_invoice(invoice)
    """

    def __init__(self, config: SzamlazzConfig, session: Optional[Session] = None):
        """
        Args:
            config: Configuración del cliente
            session: Sesión requests (opcional, para compartir cookies o tests)
        """
        self.config = config
        self.transport = SzamlazzTransport(config, session=session)

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------
    def _auth_fields(self) -> List[tuple]:
        if self.config.use_token:
            return [("szamlaagentkulcs", self.config.auth_token)]
        return [
            ("felhasznalo", self.config.user),
            ("jelszo", self.config.password),
        ]

    @staticmethod
    def _summary_from_headers(headers: Mapping[str, str]) -> Dict[str, Optional[str]]:
        return {
            "invoice_id": headers.get(HEADER_INVOICE_ID),
            "net_total": headers.get(HEADER_NET_TOTAL),
            "gross_total": headers.get(HEADER_GROSS_TOTAL),
        }

    def _invoice_result(self, response: RawResponse, pdf: Optional[bytes] = None) -> InvoiceResult:
        return InvoiceResult(
            customer_account_url=response.headers.get(HEADER_CUSTOMER_ACCOUNT_URL),
            pdf=pdf,
            **self._summary_from_headers(response.headers),
        )

    @staticmethod
    def _decode_pdf_v2(response: RawResponse) -> bytes:
        projected = project(response.document or {}, PDF_PATH)
        if "pdf" not in projected:
            raise SzamlazzParseError("La respuesta (valaszVerzio=2) no contiene el nodo xmlszamlavalasz/pdf")
        encoded = projected["pdf"]
        if not isinstance(encoded, str):
            raise SzamlazzParseError("El nodo pdf de la respuesta no es texto base64")
        try:
            return base64.b64decode("".join(encoded.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SzamlazzParseError(f"PDF base64 inválido en la respuesta: {exc}") from exc

    # ---------------------------------------------------------------------
    # Operaciones
    # ---------------------------------------------------------------------
    def get_invoice_data(
        self,
        invoice_id: Optional[str] = None,
        order_number: Optional[str] = None,
        pdf: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Obtiene los datos de una factura por número de factura o de pedido

        Returns:
            Subárbol szamla del XML de respuesta, tal cual ({etiqueta: [valores]})
        """
        if not (_is_filled(invoice_id) or _is_filled(order_number)):
            raise SzamlazzValidationError("Se debe indicar invoice_id u order_number")

        xml = (
            xml_header("xmlszamlaxml")
            + render([
                *self._auth_fields(),
                ("szamlaszam", invoice_id),
                ("rendelesSzam", order_number),
                ("pdf", pdf),
            ], 1)
            + xml_footer("xmlszamlaxml")
        )

        response = self.transport.send(ACTION_INVOICE_DATA, xml)

        invoice = first((response.document or {}).get("szamla"))
        if invoice is None:
            raise SzamlazzParseError("La respuesta no contiene el elemento szamla")
        return invoice

    def reverse_invoice(
        self,
        invoice_id: str,
        e_invoice: Optional[bool] = None,
        request_invoice_download: Optional[bool] = None,
        issue_date: Optional[date] = None,
    ) -> InvoiceResult:
        """
        Anula (stornó) una factura

        Args:
            invoice_id: Número de la factura a anular
            e_invoice: Emitir la anulación como factura electrónica (obligatorio)
            request_invoice_download: Pedir el PDF en la respuesta (obligatorio)
            issue_date: Fecha de emisión de la anulación (hoy por defecto)
        """
        if not _is_filled(invoice_id):
            raise SzamlazzValidationError("Se debe indicar invoice_id")
        if e_invoice is None:
            raise SzamlazzValidationError("Se debe indicar e_invoice")
        if request_invoice_download is None:
            raise SzamlazzValidationError("Se debe indicar request_invoice_download")

        xml = (
            xml_header("xmlszamlast")
            + wrap_with_element("beallitasok", [
                *self._auth_fields(),
                ("eszamla", bool(e_invoice)),
                ("szamlaLetoltes", bool(request_invoice_download)),
            ], 1)
            + wrap_with_element("fejlec", [
                ("szamlaszam", invoice_id),
                ("keltDatum", issue_date or date.today()),
            ], 1)
            + xml_footer("xmlszamlast")
        )

        response = self.transport.send(ACTION_REVERSE_INVOICE, xml, expect_binary=True)
        result = self._invoice_result(response, response.body if request_invoice_download else None)
        logger.info(f"Factura anulada: {invoice_id} -> {result.invoice_id}")
        return result

    def issue_invoice(self, invoice: Any) -> InvoiceResult:
        """
        Emite una factura

        Args:
            invoice: Objeto con generate_xml(indent) (ej: models.Invoice)

        Returns:
            InvoiceResult; pdf sólo si request_invoice_download está activo
        """
        if not callable(getattr(invoice, "generate_xml", None)):
            raise SzamlazzValidationError("invoice debe implementar generate_xml(indent)")

        cfg = self.config
        xml = (
            xml_header("xmlszamla")
            + wrap_with_element("beallitasok", [
                *self._auth_fields(),
                ("eszamla", cfg.e_invoice),
                ("szamlaLetoltes", cfg.request_invoice_download),
                ("szamlaLetoltesPld", cfg.downloaded_invoice_count),
                ("valaszVerzio", cfg.response_version),
            ], 1)
            + invoice.generate_xml(1)
            + xml_footer("xmlszamla")
        )

        response = self.transport.send(
            ACTION_ISSUE_INVOICE, xml, expect_binary=cfg.response_version == 1
        )

        pdf = None
        if cfg.request_invoice_download:
            if cfg.response_version == 1:
                pdf = bytes(response.body)
            else:
                pdf = self._decode_pdf_v2(response)

        result = self._invoice_result(response, pdf)
        logger.info(f"Factura emitida: {result.invoice_id}")
        return result

    def query_taxpayer(self, taxpayer_id: int) -> TaxPayerResult:
        """
        Consulta un contribuyente en la NAV por número de registro (8 dígitos)
        """
        if (
            not isinstance(taxpayer_id, int)
            or isinstance(taxpayer_id, bool)
            or not TAXPAYER_ID_RE.match(str(taxpayer_id))
        ):
            raise SzamlazzValidationError("taxpayer_id debe ser un número de 8 dígitos")

        xml = (
            xml_header("xmltaxpayer")
            + wrap_with_element("beallitasok", self._auth_fields(), 1)
            + wrap_with_element("torzsszam", taxpayer_id, 1)
            + xml_footer("xmltaxpayer")
        )

        response = self.transport.send(ACTION_TAXPAYER, xml)
        return self._decode_taxpayer(response.document or {})

    @staticmethod
    def _decode_taxpayer(document: Mapping[str, Any]) -> TaxPayerResult:
        body = first(strip_namespaces(document).get("QueryTaxpayerResponse"))
        if not isinstance(body, dict):
            raise SzamlazzParseError("La respuesta no contiene QueryTaxpayerResponse")

        if first(body.get("taxpayerValidity")) != "true":
            return TaxPayerResult(taxpayer_validity=False)

        data = _first_node(body.get("taxpayerData"))
        detail = _first_node(data.get("taxNumberDetail"))

        return TaxPayerResult(
            taxpayer_validity=True,
            taxpayer_id=_leaf(detail.get("taxpayerId")),
            vat_code=_leaf(detail.get("vatCode")),
            county_code=_leaf(detail.get("countyCode")),
            taxpayer_name=_leaf(data.get("taxpayerName")),
            taxpayer_short_name=_leaf(data.get("taxpayerShortName")),
            address=SzamlazzClient._extract_address(first(data.get("taxpayerAddressList"))),
        )

    @staticmethod
    def _extract_address(address_list: Any) -> Optional[TaxPayerAddress]:
        if not isinstance(address_list, dict):
            return None
        item = first(address_list.get("taxpayerAddressItem"))
        if not isinstance(item, dict):
            return None
        address = _first_node(item.get("taxpayerAddress"))
        return TaxPayerAddress(
            country_code=_leaf(address.get("countryCode")),
            postal_code=_leaf(address.get("postalCode")),
            city=_leaf(address.get("city")),
            street_name=_leaf(address.get("streetName")),
            public_place_category=_leaf(address.get("publicPlaceCategory")),
            number=_leaf(address.get("number")),
        )

    def register_credit_entry(
        self,
        invoice_id: str,
        credit_entries: List[CreditEntry],
        tax_number: Optional[str] = None,
        additive: bool = True,
    ) -> CreditEntryResult:
        """
        Registra pagos (kifizetés) sobre una factura

        Args:
            invoice_id: Número de factura
            credit_entries: Lista no vacía de CreditEntry
            tax_number: Número fiscal (vacío por defecto)
            additive: True suma a los pagos existentes, False los reemplaza
        """
        if not _is_filled(invoice_id):
            raise SzamlazzValidationError("Se debe indicar invoice_id")
        if not isinstance(credit_entries, (list, tuple)) or not credit_entries:
            raise SzamlazzValidationError("credit_entries debe ser una lista no vacía")
        if not all(isinstance(entry, CreditEntry) for entry in credit_entries):
            raise SzamlazzValidationError("Todos los pagos deben ser instancias de CreditEntry")

        xml = (
            xml_header("xmlszamlakifiz")
            + wrap_with_element("beallitasok", [
                *self._auth_fields(),
                ("szamlaszam", invoice_id),
                ("adoszam", tax_number or ""),
                ("additiv", bool(additive)),
            ], 1)
            + "".join(entry.generate_xml(1) for entry in credit_entries)
            + xml_footer("xmlszamlakifiz")
        )

        response = self.transport.send(ACTION_CREDIT_ENTRY, xml)
        return CreditEntryResult(**self._summary_from_headers(response.headers))

    def set_request_invoice_download(self, value: bool) -> None:
        self.config.request_invoice_download = bool(value)

    def close(self):
        """Cierra la sesión HTTP"""
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
