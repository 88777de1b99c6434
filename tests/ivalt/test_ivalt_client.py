import json
import pytest
import httpx
from unittest.mock import patch

from app.ivalt.client import IvaltClient, TransportError
from app.ivalt.config import IvaltConfig
from app.store.models import MobileIdentity
from app.core.state_machine import APPROVED, INVALID_TIMEZONE

CFG = IvaltConfig(baseUrl="https://verifier.test", apiKey="key-123", timeoutMs=1000)
IDENTITY = MobileIdentity(mobileNumber="5551234", countryCode="+1")


def _client(handler, cfg=CFG):
    return IvaltClient(cfg, http=httpx.Client(transport=httpx.MockTransport(handler)))


@pytest.fixture(autouse=True)
def no_metrics():
    with patch("app.ivalt.client.metrics") as m:
        yield m


def test_submit_challenge_posts_full_number():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200)

    txn = _client(handler).submit_challenge(IDENTITY, username="alice")
    assert txn == "+15551234"
    assert seen["url"] == "https://verifier.test/biometric-auth-request"
    assert seen["key"] == "key-123"
    assert seen["body"] == {"mobile": "+15551234"}


def test_submit_challenge_non_200_raises():
    client = _client(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(TransportError, match="HTTP 500"):
        client.submit_challenge(IDENTITY)


def test_network_failure_raises_transport_error(no_metrics):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError):
        _client(handler).check_status("+15551234")
    # latency is recorded even for failed calls
    no_metrics.record_remote_latency.assert_called_once()


def test_missing_api_key_never_calls_remote():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200)

    client = _client(handler, cfg=IvaltConfig(baseUrl="https://verifier.test"))
    with pytest.raises(TransportError, match="not configured"):
        client.submit_challenge(IDENTITY)
    assert calls == []


def test_check_status_returns_raw_response():
    def handler(request):
        assert request.url.path == "/biometric-geo-fence-auth-results"
        assert json.loads(request.content) == {"mobile": "+15551234"}
        return httpx.Response(403, json={"error": {"detail": "Invalid timezone"}})

    raw = _client(handler).check_status("+15551234")
    assert raw.statusCode == 403
    assert "timezone" in raw.body


def test_get_status_classifies():
    assert _client(lambda r: httpx.Response(200)).get_status("+15551234") == APPROVED
    denied = _client(lambda r: httpx.Response(403, json={"error": {"detail": "bad TIMEZONE"}}))
    assert denied.get_status("+15551234") == INVALID_TIMEZONE
