"""
Construcción de documentos XML para el Agente Számlázz.hu

El árbol de entrada es una secuencia ordenada de pares (nombre, valor):
- None: el elemento se omite (no se generan etiquetas vacías)
- list/tuple de pares: elementos hijos, un nivel más de indentación
- date/datetime: YYYY-MM-DD
- bool: true/false
- cualquier otro valor: str() escapando sólo <, > y &
"""
from datetime import date
from typing import Any, Sequence, Tuple
from xml.sax.saxutils import escape

PAD = "  "

SZAMLAZZ_NS_BASE = "http://www.szamlazz.hu"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
XSD_BASE_URL = "https://www.szamlazz.hu/szamla/docs/xsds"

# Tipo de documento (etiqueta raíz) -> directorio del XSD
DOCUMENT_TYPES = {
    "xmlszamla": "agent",
    "xmlszamlast": "agentst",
    "xmlszamlaxml": "agentxml",
    "xmltaxpayer": "agent",
    "xmlszamlakifiz": "agentkifiz",
}

ElementTree = Sequence[Tuple[str, Any]]


def pad(level: int) -> str:
    return PAD * level if level > 0 else ""


def escape_xml_string(value: str) -> str:
    return escape(value)


def format_value(value: Any) -> str:
    """Convierte un escalar al texto que espera el servicio"""
    if isinstance(value, date):
        # datetime es subclase de date: sólo la parte de fecha, sin conversión de zona
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
    if isinstance(value, bool):
        return "true" if value else "false"
    return escape_xml_string(str(value))


def wrap_with_element(name: str, value: Any, indent: int = 0) -> str:
    """
    Genera <name>valor</name> con la indentación indicada

    Args:
        name: Nombre del elemento
        value: Escalar, árbol anidado o None
        indent: Nivel de indentación (2 espacios por nivel)

    Returns:
        XML del elemento terminado en salto de línea, o "" si value es None
    """
    if value is None:
        return ""

    if isinstance(value, (list, tuple)):
        return (
            f"{pad(indent)}<{name}>\n"
            f"{render(value, indent + 1)}"
            f"{pad(indent)}</{name}>\n"
        )

    return f"{pad(indent)}<{name}>{format_value(value)}</{name}>\n"


def render(tree: ElementTree, indent: int = 0) -> str:
    """Genera el XML de todos los pares del árbol, en orden"""
    return "".join(wrap_with_element(name, value, indent) for name, value in tree)


def xml_header(root_tag: str) -> str:
    """
    Preámbulo fijo del documento: declaración XML + elemento raíz con namespace y schemaLocation
    """
    if root_tag not in DOCUMENT_TYPES:
        raise ValueError(f"Tipo de documento desconocido: {root_tag!r}")

    xsd_dir = DOCUMENT_TYPES[root_tag]
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<{root_tag} xmlns="{SZAMLAZZ_NS_BASE}/{root_tag}" xmlns:xsi="{XSI_NS}" '
        f'xsi:schemaLocation="{SZAMLAZZ_NS_BASE}/{root_tag} {XSD_BASE_URL}/{xsd_dir}/{root_tag}.xsd">\n'
    )


def xml_footer(root_tag: str) -> str:
    return f"</{root_tag}>\n"
