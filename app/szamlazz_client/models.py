"""
Modelos de datos para el Agente Számlázz.hu

Resultados tipados de cada operación y los objetos que saben generar su propio
fragmento XML (factura, comprador, vendedor, ítems, pagos).
"""
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Union

from .exceptions import SzamlazzValidationError
from .xml_builder import render, wrap_with_element

Number = Union[int, float, Decimal, str]

CENT = Decimal("0.01")


# ---------------------------------------------------------------------
# Resultados
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class InvoiceResult:
    """Resultado de emisión o anulación (stornó) de factura"""
    invoice_id: Optional[str]
    net_total: Optional[str]
    gross_total: Optional[str]
    customer_account_url: Optional[str]
    pdf: Optional[bytes] = None


@dataclass(frozen=True)
class CreditEntryResult:
    """Resultado del registro de pagos"""
    invoice_id: Optional[str]
    net_total: Optional[str]
    gross_total: Optional[str]


@dataclass(frozen=True)
class TaxPayerAddress:
    country_code: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    street_name: Optional[str] = None
    public_place_category: Optional[str] = None
    number: Optional[str] = None


@dataclass(frozen=True)
class TaxPayerResult:
    """Resultado de la consulta de contribuyente (NAV)"""
    taxpayer_validity: bool
    taxpayer_id: Optional[str] = None
    vat_code: Optional[str] = None
    county_code: Optional[str] = None
    taxpayer_name: Optional[str] = None
    taxpayer_short_name: Optional[str] = None
    address: Optional[TaxPayerAddress] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.taxpayer_validity:
            return {"taxpayer_validity": False}
        return asdict(self)


# ---------------------------------------------------------------------
# Pagos
# ---------------------------------------------------------------------
@dataclass
class CreditEntry:
    """Pago registrado contra una factura (elemento kifizetes)"""
    date: date
    title: str
    amount: Number
    description: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.date, date):
            raise SzamlazzValidationError("CreditEntry.date debe ser una fecha")
        if not isinstance(self.title, str) or not self.title.strip():
            raise SzamlazzValidationError("CreditEntry.title es obligatorio")
        if self.amount is None:
            raise SzamlazzValidationError("CreditEntry.amount es obligatorio")

    def generate_xml(self, indent: int = 1) -> str:
        return wrap_with_element("kifizetes", [
            ("datum", self.date),
            ("jogcim", self.title),
            ("osszeg", self.amount),
            ("leiras", self.description),
        ], indent)


# ---------------------------------------------------------------------
# Factura
# ---------------------------------------------------------------------
@dataclass
class Seller:
    bank: Optional[str] = None
    bank_account_number: Optional[str] = None
    email_reply_to: Optional[str] = None
    email_subject: Optional[str] = None
    email_text: Optional[str] = None

    def tree(self) -> list:
        return [
            ("bank", self.bank),
            ("bankszamlaszam", self.bank_account_number),
            ("emailReplyto", self.email_reply_to),
            ("emailTargy", self.email_subject),
            ("emailSzoveg", self.email_text),
        ]


@dataclass
class Buyer:
    name: str
    zip: str
    city: str
    address: str
    email: Optional[str] = None
    send_email: Optional[bool] = None
    tax_number: Optional[str] = None
    post_name: Optional[str] = None
    post_zip: Optional[str] = None
    post_city: Optional[str] = None
    post_address: Optional[str] = None
    identifier: Optional[str] = None
    phone: Optional[str] = None
    comment: Optional[str] = None

    def __post_init__(self):
        for attr in ("name", "zip", "city", "address"):
            value = getattr(self, attr)
            if not isinstance(value, str) or not value.strip():
                raise SzamlazzValidationError(f"Buyer.{attr} es obligatorio")

    def tree(self) -> list:
        return [
            ("nev", self.name),
            ("irsz", self.zip),
            ("telepules", self.city),
            ("cim", self.address),
            ("email", self.email),
            ("sendEmail", self.send_email),
            ("adoszam", self.tax_number),
            ("postazasiNev", self.post_name),
            ("postazasiIrsz", self.post_zip),
            ("postazasiTelepules", self.post_city),
            ("postazasiCim", self.post_address),
            ("azonosito", self.identifier),
            ("telefonszam", self.phone),
            ("megjegyzes", self.comment),
        ]


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class Item:
    """
    Ítem de la factura

    vat_rate puede ser numérico (27, 5, ...) o una clave del servicio
    (AAM, TAM, EU, ...); en ese caso el IVA es 0.
    """
    label: str
    quantity: Number
    unit: str
    net_unit_price: Number
    vat_rate: Union[int, str]
    comment: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.label, str) or not self.label.strip():
            raise SzamlazzValidationError("Item.label es obligatorio")
        if self.quantity is None or self.net_unit_price is None:
            raise SzamlazzValidationError("Item.quantity y Item.net_unit_price son obligatorios")

    @property
    def net_value(self) -> Decimal:
        return _money(Decimal(str(self.net_unit_price)) * Decimal(str(self.quantity)))

    @property
    def vat_value(self) -> Decimal:
        rate = str(self.vat_rate)
        if not rate.isdigit():
            return Decimal("0.00")
        return _money(self.net_value * Decimal(rate) / 100)

    @property
    def gross_value(self) -> Decimal:
        return self.net_value + self.vat_value

    def tree(self) -> list:
        return [
            ("megnevezes", self.label),
            ("mennyiseg", self.quantity),
            ("mennyisegiEgyseg", self.unit),
            ("nettoEgysegar", self.net_unit_price),
            ("afakulcs", self.vat_rate),
            ("nettoErtek", self.net_value),
            ("afaErtek", self.vat_value),
            ("bruttoErtek", self.gross_value),
            ("megjegyzes", self.comment),
        ]


@dataclass
class Invoice:
    """Factura (fejlec + elado + vevo + tetelek)"""
    seller: Seller
    buyer: Buyer
    items: List[Item]
    payment_method: str
    currency: str = "HUF"
    language: str = "hu"
    issue_date: Optional[date] = None
    fulfillment_date: Optional[date] = None
    due_date: Optional[date] = None
    comment: Optional[str] = None
    order_number: Optional[str] = None
    proforma: bool = False
    invoice_id_prefix: Optional[str] = None
    paid: bool = False
    created_at: date = field(default_factory=date.today)

    def __post_init__(self):
        if not self.items:
            raise SzamlazzValidationError("Invoice.items no puede estar vacío")
        if not all(isinstance(item, Item) for item in self.items):
            raise SzamlazzValidationError("Invoice.items sólo acepta instancias de Item")
        if not isinstance(self.buyer, Buyer) or not isinstance(self.seller, Seller):
            raise SzamlazzValidationError("Invoice requiere Seller y Buyer")

    def generate_xml(self, indent: int = 1) -> str:
        return render([
            ("fejlec", [
                ("keltDatum", self.issue_date or self.created_at),
                ("teljesitesDatum", self.fulfillment_date or self.created_at),
                ("fizetesiHataridoDatum", self.due_date or self.created_at),
                ("fizmod", self.payment_method),
                ("penznem", self.currency),
                ("szamlaNyelve", self.language),
                ("megjegyzes", self.comment),
                ("rendelesSzam", self.order_number),
                ("dijbekero", self.proforma),
                ("szamlaszamElotag", self.invoice_id_prefix),
                ("fizetve", self.paid),
            ]),
            ("elado", self.seller.tree()),
            ("vevo", self.buyer.tree()),
            ("tetelek", [("tetel", item.tree()) for item in self.items]),
        ], indent)
