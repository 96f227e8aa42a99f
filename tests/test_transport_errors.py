from pathlib import Path
import sys

import pytest
import requests

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.szamlazz_client.config import SzamlazzConfig  # noqa: E402
from app.szamlazz_client.exceptions import (  # noqa: E402
    SzamlazzParseError,
    SzamlazzServiceError,
    SzamlazzTransportError,
)
from app.szamlazz_client.transport import SzamlazzTransport, decode_error_message  # noqa: E402
from _mock_http import _MockResponse, _MockSession, timeout_error, xml_response  # noqa: E402

OK_XML = '<?xml version="1.0" encoding="UTF-8"?><szamla><alap><szamlaszam>E-1</szamlaszam></alap></szamla>'


def _transport(*responses, **cfg):
    session = _MockSession(list(responses))
    config = SzamlazzConfig(auth_token="agent-key-123", **cfg)
    return SzamlazzTransport(config, session=session), session


def test_send_single_multipart_field_named_request_xml():
    transport, session = _transport(xml_response(OK_XML), timeout=20)

    response = transport.send("action-szamla_agent_xml", "<xmlszamlaxml/>")

    assert session.posts[0]["url"] == "https://www.szamlazz.hu/szamla/"
    assert session.posts[0]["timeout"] == 20
    assert session.sent_field() == "action-szamla_agent_xml"
    assert session.sent_xml() == "<xmlszamlaxml/>"
    assert response.document["szamla"][0]["alap"][0]["szamlaszam"] == ["E-1"]


def test_zero_timeout_means_no_timeout():
    transport, session = _transport(xml_response(OK_XML))
    transport.send("action-szamla_agent_xml", "<x/>")
    assert session.posts[0]["timeout"] is None


def test_non_200_is_transport_error():
    transport, _ = _transport(_MockResponse(status_code=503, reason="Service Unavailable"))

    with pytest.raises(SzamlazzTransportError) as exc_info:
        transport.send("action-szamla_agent_xml", "<x/>")

    assert exc_info.value.http_status == 503
    assert exc_info.value.status_text == "Service Unavailable"
    assert "503" in str(exc_info.value)


def test_timeout_is_transport_error():
    transport, _ = _transport(timeout_error())
    with pytest.raises(SzamlazzTransportError, match="Timeout"):
        transport.send("action-szamla_agent_xml", "<x/>")


def test_connection_error_is_transport_error():
    transport, _ = _transport(requests.ConnectionError("refused"))
    with pytest.raises(SzamlazzTransportError) as exc_info:
        transport.send("action-szamla_agent_xml", "<x/>")
    assert exc_info.value.http_status is None


def test_header_error_wins_over_200_and_valid_body():
    headers = {"szlahu_error_code": "57", "szlahu_error": "Hib%C3%A1s+sz%C3%A1mlasz%C3%A1m"}
    transport, _ = _transport(xml_response(OK_XML, headers=headers))

    with pytest.raises(SzamlazzServiceError) as exc_info:
        transport.send("action-szamla_agent_xml", "<x/>")

    assert exc_info.value.code == "57"
    assert exc_info.value.message == "Hibás számlaszám"


def test_header_error_checked_before_body_parsing():
    headers = {"szlahu_error_code": "3", "szlahu_error": "Sikertelen+bejelentkez%C3%A9s"}
    transport, _ = _transport(xml_response("not xml at all", headers=headers))

    with pytest.raises(SzamlazzServiceError, match="Sikertelen bejelentkezés"):
        transport.send("action-szamla_agent_xml", "<x/>")


def test_header_error_on_binary_response():
    headers = {"szlahu_error_code": "7", "szlahu_error": "Hiba"}
    transport, _ = _transport(_MockResponse(headers=headers, content=b"%PDF-1.4"))

    with pytest.raises(SzamlazzServiceError):
        transport.send("action-szamla_agent_st", "<x/>", expect_binary=True)


def test_xml_error_node_is_service_error():
    body = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<xmlszamlavalasz xmlns="http://www.szamlazz.hu/xmlszamlavalasz">'
        "<sikeres>false</sikeres><hibakod>136</hibakod><hibauzenet>Hiányzó adat</hibauzenet>"
        "</xmlszamlavalasz>"
    )
    transport, _ = _transport(xml_response(body))

    with pytest.raises(SzamlazzServiceError) as exc_info:
        transport.send("action-xmlagentxmlfile", "<x/>")

    assert exc_info.value.code == "136"
    assert exc_info.value.message == "Hiányzó adat"


def test_malformed_xml_is_parse_error():
    transport, _ = _transport(xml_response("<szamla>"))
    with pytest.raises(SzamlazzParseError):
        transport.send("action-szamla_agent_xml", "<x/>")


def test_binary_response_is_not_parsed():
    transport, _ = _transport(_MockResponse(content=b"%PDF-1.4 \x00\xff"))

    response = transport.send("action-szamla_agent_st", "<x/>", expect_binary=True)

    assert response.body == b"%PDF-1.4 \x00\xff"
    assert response.document is None


def test_credit_entry_plain_text_is_not_parsed():
    transport, _ = _transport(xml_response("xmlszamlakifiz OK"))

    response = transport.send("action-szamla_agent_kifiz", "<x/>")

    assert response.body == "xmlszamlakifiz OK"
    assert response.document is None


def test_cookies_persist_across_calls():
    transport, session = _transport(xml_response(OK_XML), xml_response(OK_XML))

    transport.send("action-szamla_agent_xml", "<x/>")
    transport.send("action-szamla_agent_xml", "<x/>")

    assert transport.cookies is session.cookies
    assert session.cookies.get("JSESSIONID", domain="www.szamlazz.hu") == "session-2"


def test_decode_error_message():
    assert decode_error_message("a+b%20c%2Bd") == "a b c+d"
    assert decode_error_message(None) == ""


def test_invalid_utf8_body_is_parse_error():
    body = b'<?xml version="1.0" encoding="UTF-8"?><szamla><nev>\xe1</nev></szamla>'
    transport, _ = _transport(_MockResponse(content=body))

    with pytest.raises(SzamlazzParseError):
        transport.send("action-szamla_agent_xml", "<x/>")


def test_body_honours_declared_encoding():
    body = '<?xml version="1.0" encoding="ISO-8859-2"?><szamla><nev>Kovács Ődön</nev></szamla>'.encode("iso-8859-2")
    transport, _ = _transport(_MockResponse(content=body))

    response = transport.send("action-szamla_agent_xml", "<x/>")

    assert response.document == {"szamla": [{"nev": ["Kovács Ődön"]}]}
