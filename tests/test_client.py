"""
컨트롤러 HTTP 클라이언트 테스트
"""

from unittest.mock import MagicMock
import requests

from towalink_bootstrap.client import (
    ControllerClient, NegotiationRequest, ResponseStatus
)


def make_request():
    return NegotiationRequest(
        script_version="0.1",
        mac="aa:bb:cc:dd:ee:ff",
        hostname="node1.example.net",
        recovery_key="rk",
        config_key="ck",
        wg_public="pub",
    )


def make_session(status_code=200, text="", content=b""):
    session = MagicMock()
    response = MagicMock(status_code=status_code, text=text, content=content)
    session.post.return_value = response
    session.get.return_value = response
    return session


def test_form_fields():
    assert make_request().to_form() == {
        "scriptversion": "0.1",
        "mac": "aa:bb:cc:dd:ee:ff",
        "hostname": "node1.example.net",
        "recovery-key": "rk",
        "config-key": "ck",
        "wg_public": "pub",
    }


def test_negotiate_downloaded(tmp_path):
    cacert = tmp_path / "cacert.pem"
    cacert.write_text("-----BEGIN CERTIFICATE-----\n")
    session = make_session(200, text="tunnel: {}\n# EOF\n")
    client = ControllerClient(cacert_file=str(cacert), request_timeout=7, session=session)

    response = client.negotiate("ctrl.example.net", make_request())

    assert response.status == ResponseStatus.DOWNLOADED
    assert response.ok
    assert response.body.endswith("# EOF\n")
    args, kwargs = session.post.call_args
    assert args[0] == "https://ctrl.example.net/bootstrap/"
    assert kwargs["data"]["config-key"] == "ck"
    assert kwargs["timeout"] == 7
    assert kwargs["verify"] == str(cacert)


def test_negotiate_not_yet_available(tmp_path):
    """204 는 오류가 아니라 아직 프로비저닝 전"""
    client = ControllerClient(cacert_file=str(tmp_path / "missing.pem"), session=make_session(204))

    response = client.negotiate("ctrl.example.net", make_request())
    assert response.status == ResponseStatus.NOT_AVAILABLE
    assert not response.ok
    # CA 인증서가 없으면 시스템 저장소로 검증
    assert client.session.post.call_args[1]["verify"] is True


def test_negotiate_http_error(tmp_path):
    client = ControllerClient(cacert_file=str(tmp_path / "missing.pem"), session=make_session(500))

    response = client.negotiate("ctrl.example.net", make_request())
    assert response.status == ResponseStatus.HTTP_ERROR
    assert response.http_code == 500


def test_negotiate_transport_error(tmp_path):
    session = MagicMock()
    session.post.side_effect = requests.exceptions.ConnectionError("connection refused")
    client = ControllerClient(cacert_file=str(tmp_path / "missing.pem"), session=session)

    response = client.negotiate("ctrl.example.net", make_request())
    assert response.status == ResponseStatus.TRANSPORT_ERROR
    assert "connection refused" in response.error


def test_fetch_recovery():
    session = make_session(200, text="reset_tunnel: true\n# EOF\n")
    client = ControllerClient(recovery_timeout=4, session=session)

    response = client.fetch_recovery("aabbccddeeff.recovery.towalink.net")
    assert response.ok
    args, kwargs = session.get.call_args
    assert args[0] == "https://aabbccddeeff.recovery.towalink.net/recovery/"
    assert kwargs["timeout"] == 4


def test_fetch_recovery_missing():
    client = ControllerClient(session=make_session(404))
    response = client.fetch_recovery("aabbccddeeff.recovery.towalink.net")
    assert response.status == ResponseStatus.HTTP_ERROR
    assert response.http_code == 404


def test_fetch_installer_keeps_bytes():
    session = make_session(200, text="#!/bin/sh\n", content=b"#!/bin/sh\n")
    client = ControllerClient(install_timeout=10, session=session)

    response = client.fetch_installer("https://install.example.net/node/")
    assert response.content == b"#!/bin/sh\n"
    assert session.get.call_args[1]["timeout"] == 10


def test_fetch_installer_timeout():
    session = MagicMock()
    session.get.side_effect = requests.exceptions.Timeout("timed out")
    client = ControllerClient(session=session)

    response = client.fetch_installer("https://install.example.net/node/")
    assert response.status == ResponseStatus.TRANSPORT_ERROR
