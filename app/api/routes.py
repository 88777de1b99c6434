from functools import lru_cache
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Response
from starlette.concurrency import run_in_threadpool

from app.api.schemas import (
    AuthenticateRequest,
    AuthenticateActionRequest,
    SetupActionRequest,
    FlowResponse,
    CredentialList,
    CredentialView,
)
from app.api.auth import require_api_key
from app.core.authentication import AuthenticationFlow
from app.core.enrollment import EnrollmentFlow
from app.core.results import FlowResult
from app.ivalt.client import IvaltClient
from app.ivalt.config import IvaltConfig
from app.settings import settings
from app.store.models import AuthSession
from app.store.session_repo import load_auth_session, save_auth_session
import app.store.credential_repo as credential_repo
from app.utils.lock import session_lock, SessionBusyError
from app.observability.logging import log

router = APIRouter(prefix="/api/ivalt", dependencies=[Depends(require_api_key)])

# Headroom over the verifier call for load and save around it
LOCK_MARGIN_MS = 5000


@lru_cache(maxsize=1)
def get_config() -> IvaltConfig:
    # Resolved once; flows never go looking for credentials themselves.
    return IvaltConfig.from_settings(settings)


@lru_cache(maxsize=1)
def get_ivalt_client() -> IvaltClient:
    # One keep-alive pool shared by both flows
    return IvaltClient(get_config())


@lru_cache(maxsize=1)
def get_authentication_flow() -> AuthenticationFlow:
    return AuthenticationFlow(get_config(), client=get_ivalt_client())


@lru_cache(maxsize=1)
def get_enrollment_flow() -> EnrollmentFlow:
    return EnrollmentFlow(get_config(), client=get_ivalt_client())


def lock_ttl_ms() -> int:
    """The lock must outlive the slowest verifier call made while holding it."""
    return int(get_config().timeoutMs) + LOCK_MARGIN_MS


def _to_response(result: FlowResult, response: Response) -> FlowResponse:
    response.status_code = int(result.httpStatus or 200)
    return FlowResponse(
        status=result.status,
        state=result.state,
        page=result.page,
        error=result.error,
        field=result.field,
        flowError=result.flowError,
        attributes=result.attributes,
    )


def _run_in_session(session_id: str, user_id: str, username: str,
                    step: Callable[[AuthSession], FlowResult]) -> FlowResult:
    """Load notes, run one state-machine step, persist notes. One request per session at a time."""
    try:
        with session_lock(session_id, ttl_ms=lock_ttl_ms()):
            session = load_auth_session(session_id, user_id, username or "")
            result = step(session)
            save_auth_session(session)
    except SessionBusyError:
        log(event="ivalt_session_busy", sessionId=session_id, userId=user_id)
        raise HTTPException(status_code=409, detail="Session is already being processed")
    log(
        event="ivalt_flow_step",
        sessionId=session_id,
        userId=user_id,
        status=result.status,
        state=result.state,
        error=result.error,
        terminal=result.terminal,
    )
    return result


# ---------------------------------------------------------------------------
# Authentication flow
# ---------------------------------------------------------------------------
@router.post("/authenticate", response_model=FlowResponse)
async def authenticate(req: AuthenticateRequest, response: Response,
                       flow: AuthenticationFlow = Depends(get_authentication_flow)):
    result = await run_in_threadpool(
        _run_in_session, req.sessionId, req.userId, req.username,
        lambda s: flow.authenticate(s, required=req.required),
    )
    return _to_response(result, response)


@router.post("/authenticate/action", response_model=FlowResponse)
async def authenticate_action(req: AuthenticateActionRequest, response: Response,
                              flow: AuthenticationFlow = Depends(get_authentication_flow)):
    result = await run_in_threadpool(
        _run_in_session, req.sessionId, req.userId, req.username,
        lambda s: flow.action(s, req.action),
    )
    return _to_response(result, response)


# ---------------------------------------------------------------------------
# Enrollment (CONFIGURE_IVALT required action)
# ---------------------------------------------------------------------------
@router.get("/setup", response_model=FlowResponse)
def setup_form(response: Response, flow: EnrollmentFlow = Depends(get_enrollment_flow)):
    return _to_response(flow.challenge(AuthSession(sessionId="")), response)


@router.post("/setup/action", response_model=FlowResponse)
async def setup_action(req: SetupActionRequest, response: Response,
                       flow: EnrollmentFlow = Depends(get_enrollment_flow)):
    form = {
        "action": req.action,
        "mobileNumber": req.mobileNumber,
        "countryCode": req.countryCode,
    }
    result = await run_in_threadpool(
        _run_in_session, req.sessionId, req.userId, req.username,
        lambda s: flow.process(s, form),
    )
    return _to_response(result, response)


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------
@router.get("/credential-type")
def credential_type():
    return credential_repo.CREDENTIAL_TYPE_METADATA


@router.get("/credentials/{user_id}", response_model=CredentialList)
def list_credentials(user_id: str):
    creds = credential_repo.list_for_user(user_id)
    return CredentialList(
        userId=user_id,
        configured=bool(creds),
        credentials=[
            CredentialView(
                id=c.id,
                type=c.type,
                userLabel=c.userLabel,
                createdDate=c.createdDate,
                mobileNumber=c.mobileIdentity.masked,
            )
            for c in creds
        ],
        requiredActions=sorted(credential_repo.required_actions(user_id)),
    )


@router.delete("/credentials/{user_id}/{credential_id}")
def delete_credential(user_id: str, credential_id: str):
    if not credential_repo.delete(user_id, credential_id):
        raise HTTPException(status_code=404, detail="Credential not found")
    return {"deleted": True, "credentialId": credential_id}
