"""
Parseo de respuestas XML del Agente Számlázz.hu

Cada elemento se decodifica como lista bajo su etiqueta (los elementos pueden
repetirse), incluso los que aparecen una sola vez. Los llamadores deben tomar
explícitamente el primero (first) o todos.

Forma del documento parseado:
- hoja sin atributos -> texto ("" si está vacía)
- elemento con hijos o atributos -> dict {etiqueta: [valores]}
  con los atributos bajo "$" y el texto (si no es sólo espacios) bajo "_"
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from lxml import etree

from .exceptions import SzamlazzParseError

logger = logging.getLogger(__name__)

ATTR_KEY = "$"
TEXT_KEY = "_"

ParsedDocument = Dict[str, Any]


def _new_parser() -> Any:
    # un parser por llamada: los parsers de lxml no se comparten entre hilos
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True, remove_pis=True)


def _qualified_name(el: Any, name: str) -> str:
    """Nombre prefix:local (o local) a partir de un nombre {uri}local de lxml"""
    qname = etree.QName(name)
    if not qname.namespace:
        return qname.localname
    for prefix, uri in el.nsmap.items():
        if uri == qname.namespace and prefix:
            return f"{prefix}:{qname.localname}"
    return qname.localname


def _element_key(el: Any) -> str:
    local = etree.QName(el).localname
    return f"{el.prefix}:{local}" if el.prefix else local


def _element_value(el: Any) -> Union[str, ParsedDocument]:
    children = [child for child in el if isinstance(child.tag, str)]
    text = (el.text or "") + "".join(child.tail or "" for child in children)

    if not children and not el.attrib:
        return text

    node: ParsedDocument = {}
    if el.attrib:
        node[ATTR_KEY] = {_qualified_name(el, k): v for k, v in el.attrib.items()}
    if text.strip():
        node[TEXT_KEY] = text
    for child in children:
        node.setdefault(_element_key(child), []).append(_element_value(child))
    return node


def parse_xml_string(xml_text: Union[str, bytes]) -> ParsedDocument:
    """
    Parsea un documento XML a {etiqueta: [valores]}

    Args:
        xml_text: XML como str o bytes

    Returns:
        Documento parseado; la raíz también es una lista de un elemento

    Raises:
        SzamlazzParseError: Si el XML está vacío o mal formado
    """
    if isinstance(xml_text, str):
        xml_text = xml_text.encode("utf-8")

    if not xml_text or not xml_text.strip():
        raise SzamlazzParseError("Respuesta vacía: se esperaba XML")

    try:
        root = etree.fromstring(xml_text, parser=_new_parser())
    except etree.XMLSyntaxError as exc:
        logger.debug(f"XML inválido ({len(xml_text)} bytes): {exc}")
        raise SzamlazzParseError(f"XML inválido en la respuesta: {exc}") from exc

    return {_element_key(root): [_element_value(root)]}


def _strip_prefix(key: str) -> str:
    if key in (ATTR_KEY, TEXT_KEY):
        return key
    return key.split(":", 1)[1] if ":" in key else key


def _strip_value(value: Any) -> Any:
    if isinstance(value, dict):
        return strip_namespaces(value)
    return value


def strip_namespaces(doc: Mapping[str, Any]) -> ParsedDocument:
    """
    Quita el prefijo de namespace de todas las etiquetas, recursivamente

    Dos etiquetas con el mismo nombre local y distinto prefijo se unen en la
    misma lista, en orden de documento. No se detectan colisiones.
    """
    result: ParsedDocument = {}
    for key, value in doc.items():
        if key in (ATTR_KEY, TEXT_KEY):
            result[key] = value
            continue
        result.setdefault(_strip_prefix(key), []).extend(_strip_value(v) for v in value)
    return result


def first(values: Optional[List[Any]], default: Any = None) -> Any:
    """Primer elemento de una lista parseada (default si no existe o está vacía)"""
    if not values:
        return default
    return values[0]


_MISSING = object()


def _walk(doc: Any, path: str) -> Any:
    node = doc
    for segment in path.split("."):
        if not isinstance(node, dict) or segment not in node:
            return _MISSING
        node = first(node[segment], _MISSING)
        if node is _MISSING:
            return _MISSING
    return node


def project(doc: Mapping[str, Any], path_specs: Mapping[str, str]) -> Dict[str, Any]:
    """
    Extrae hojas de un documento parseado a un dict plano

    Args:
        doc: Documento parseado
        path_specs: {"ruta.con.puntos": "clave_salida"}

    Returns:
        Sólo las claves cuya ruta existe (las rutas ausentes se omiten)
    """
    result: Dict[str, Any] = {}
    for path, output_key in path_specs.items():
        value = _walk(doc, path)
        if value is not _MISSING:
            result[output_key] = value
    return result


def xml2obj(xml_text: Union[str, bytes], path_specs: Mapping[str, str]) -> Dict[str, Any]:
    """parse_xml_string + project"""
    return project(parse_xml_string(xml_text), path_specs)
