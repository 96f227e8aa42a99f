"""
Módulo cliente para integración con el Agente de facturación Számlázz.hu
Hungría - Számla Agent (XML sobre HTTP multipart)
"""
from .config import SzamlazzConfig, get_szamlazz_config
from .client import SzamlazzClient
from .transport import SzamlazzTransport, RawResponse
from .models import (
    Buyer,
    CreditEntry,
    CreditEntryResult,
    Invoice,
    InvoiceResult,
    Item,
    Seller,
    TaxPayerAddress,
    TaxPayerResult,
)
from .exceptions import (
    SzamlazzException,
    SzamlazzValidationError,
    SzamlazzTransportError,
    SzamlazzServiceError,
    SzamlazzParseError,
)

__all__ = [
    'SzamlazzConfig',
    'get_szamlazz_config',
    'SzamlazzClient',
    'SzamlazzTransport',
    'RawResponse',
    'Buyer',
    'CreditEntry',
    'CreditEntryResult',
    'Invoice',
    'InvoiceResult',
    'Item',
    'Seller',
    'TaxPayerAddress',
    'TaxPayerResult',
    'SzamlazzException',
    'SzamlazzValidationError',
    'SzamlazzTransportError',
    'SzamlazzServiceError',
    'SzamlazzParseError',
]
