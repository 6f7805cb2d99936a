import httpx
import pytest

from ionos_provider.clients.http import RequestFailure, send_request


def test_send_request_raises_request_failure_without_retrying():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(status_code=500, text="boom", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    with pytest.raises(RequestFailure) as excinfo:
        send_request(client, "POST", "http://example.test/servers")
    assert len(calls) == 1
    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == "HTTP 500: boom"
    assert excinfo.value.method == "POST"
    assert not excinfo.value.not_found


def test_send_request_flags_not_found():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(status_code=404, request=request)
    )
    client = httpx.Client(transport=transport)
    with pytest.raises(RequestFailure) as excinfo:
        send_request(client, "GET", "http://example.test/servers/1")
    assert excinfo.value.not_found
    assert excinfo.value.detail == "HTTP 404"


def test_send_request_wraps_transport_errors():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    with pytest.raises(RequestFailure) as excinfo:
        send_request(client, "GET", "http://example.test")
    assert excinfo.value.status_code is None
    assert excinfo.value.error_type == "ConnectError"


def test_send_request_succeeds():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(
            status_code=200, json={"ok": True}, request=request
        )
    )
    client = httpx.Client(transport=transport)
    response = send_request(client, "GET", "http://example.test")
    assert response.json() == {"ok": True}
