import pytest
from contextlib import nullcontext
from fastapi.testclient import TestClient
from unittest.mock import patch, MagicMock

from app.main import app
from app.api.auth import require_api_key
from app.api.routes import get_authentication_flow, get_enrollment_flow, get_config, get_ivalt_client
from app.ivalt.config import IvaltConfig
from app.core.results import FlowResult
from app.core import results
from app.core.state_machine import *
from app.store.models import AuthSession, Credential, MobileIdentity
from app.utils.lock import SessionBusyError

client = TestClient(app)


@pytest.fixture
def flows():
    auth_flow = MagicMock()
    enroll_flow = MagicMock()
    app.dependency_overrides[require_api_key] = lambda: None
    app.dependency_overrides[get_authentication_flow] = lambda: auth_flow
    app.dependency_overrides[get_enrollment_flow] = lambda: enroll_flow
    yield auth_flow, enroll_flow
    app.dependency_overrides = {}


@pytest.fixture
def store():
    session = AuthSession(sessionId="s1", userId="u1", username="alice")
    with patch("app.api.routes.session_lock", side_effect=lambda sid, **kwargs: nullcontext()), \
         patch("app.api.routes.load_auth_session", return_value=session) as load, \
         patch("app.api.routes.save_auth_session") as save:
        yield session, load, save


def test_authenticate_returns_waiting_page(flows, store):
    auth_flow, _ = flows
    session, load, save = store
    auth_flow.authenticate.return_value = FlowResult(
        status=results.CHALLENGE, state=AUTH_SUBMITTED, page=PAGE_AUTH,
        attributes={"mobileNumber": "****1234"},
    )

    resp = client.post("/api/ivalt/authenticate", json={"sessionId": "s1", "userId": "u1", "username": "alice"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "challenge"
    assert body["page"] == "ivalt-auth"
    assert body["attributes"]["mobileNumber"] == "****1234"
    auth_flow.authenticate.assert_called_once_with(session, required=True)
    load.assert_called_once_with("s1", "u1", "alice")
    save.assert_called_once_with(session)


def test_authenticate_action_failure_uses_http_status(flows, store):
    auth_flow, _ = flows
    auth_flow.action.return_value = FlowResult(
        status=results.FAILURE, state=AUTH_TIMED_OUT, page=PAGE_ERROR,
        error=ERR_TIMEOUT, flowError=EXPIRED_CODE, httpStatus=401,
    )

    resp = client.post("/api/ivalt/authenticate/action", json={"sessionId": "s1", "userId": "u1"})

    assert resp.status_code == 401
    assert resp.json()["error"] == "ivaltTimeout"
    assert resp.json()["flowError"] == "EXPIRED_CODE"
    assert auth_flow.action.call_args[0][1] is None


def test_setup_action_passes_form(flows, store):
    _, enroll_flow = flows
    session, _, _ = store
    enroll_flow.process.return_value = FlowResult(
        status=results.CHALLENGE, state=ENROLL_CAPTURING, page=PAGE_SETUP,
        error=ERR_MOBILE_REQUIRED, field="mobileNumber",
    )

    resp = client.post("/api/ivalt/setup/action", json={"sessionId": "s1", "userId": "u1", "countryCode": "+1"})

    assert resp.status_code == 200
    assert resp.json()["field"] == "mobileNumber"
    enroll_flow.process.assert_called_once_with(
        session, {"action": None, "mobileNumber": None, "countryCode": "+1"})


def test_setup_form(flows):
    _, enroll_flow = flows
    enroll_flow.challenge.return_value = FlowResult(status=results.CHALLENGE, state=ENROLL_CAPTURING, page=PAGE_SETUP)
    resp = client.get("/api/ivalt/setup")
    assert resp.status_code == 200
    assert resp.json()["page"] == "ivalt-setup"


def test_busy_session_is_409(flows):
    def busy(session_id, **kwargs):
        raise SessionBusyError("locked")

    with patch("app.api.routes.session_lock", side_effect=busy):
        resp = client.post("/api/ivalt/authenticate/action", json={"sessionId": "s1", "userId": "u1"})
    assert resp.status_code == 409


@patch("app.api.routes.credential_repo")
def test_list_credentials_is_masked(mock_repo, flows):
    mock_repo.list_for_user.return_value = [
        Credential(id="c1", userId="u1", mobileIdentity=MobileIdentity("9876543210", "+91"), createdDate=5),
    ]
    mock_repo.required_actions.return_value = set()

    resp = client.get("/api/ivalt/credentials/u1")

    assert resp.status_code == 200
    body = resp.json()
    assert body["configured"] is True
    assert body["credentials"][0]["mobileNumber"] == "****3210"
    assert "9876543210" not in resp.text


@patch("app.api.routes.credential_repo")
def test_delete_credential_not_found(mock_repo, flows):
    mock_repo.delete.return_value = False
    resp = client.delete("/api/ivalt/credentials/u1/nope")
    assert resp.status_code == 404


def test_credential_type(flows):
    resp = client.get("/api/ivalt/credential-type")
    assert resp.json()["createAction"] == "CONFIGURE_IVALT"


def test_api_key_enforced():
    with patch("app.api.auth.settings") as mock_settings:
        mock_settings.API_KEY = "expected"
        resp = client.get("/api/ivalt/credential-type", headers={"x-api-key": "wrong"})
    assert resp.status_code == 401


def test_session_lock_outlives_verifier_timeout(flows):
    auth_flow, _ = flows
    auth_flow.action.return_value = FlowResult(status=results.CHALLENGE, state=AUTH_POLLING, page=PAGE_AUTH)
    cfg = IvaltConfig(baseUrl="https://verifier.test", apiKey="k", timeoutMs=300000)

    with patch("app.api.routes.get_config", return_value=cfg), \
         patch("app.api.routes.session_lock", return_value=nullcontext()) as lock, \
         patch("app.api.routes.load_auth_session", return_value=AuthSession(sessionId="s1", userId="u1")), \
         patch("app.api.routes.save_auth_session"):
        resp = client.post("/api/ivalt/authenticate/action", json={"sessionId": "s1", "userId": "u1"})

    assert resp.status_code == 200
    assert lock.call_args[0][0] == "s1"
    assert lock.call_args[1]["ttl_ms"] > cfg.timeoutMs


def test_flows_share_one_verifier_client():
    for cached in (get_config, get_ivalt_client, get_authentication_flow, get_enrollment_flow):
        cached.cache_clear()
    cfg = IvaltConfig(baseUrl="https://verifier.test", apiKey="k")
    try:
        with patch("app.api.routes.IvaltConfig.from_settings", return_value=cfg):
            assert get_authentication_flow().client is get_enrollment_flow().client
            assert get_ivalt_client().config is cfg
    finally:
        for cached in (get_config, get_ivalt_client, get_authentication_flow, get_enrollment_flow):
            cached.cache_clear()
