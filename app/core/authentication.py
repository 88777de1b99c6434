"""
Login-time push approval.

authenticate() issues the challenge on first contact; action() handles every
later interaction (timer-driven re-poll or cancel). The flow keeps no state of
its own: the open transaction lives in the caller's AuthSession notes, so one
instance serves all requests.
"""
from typing import Optional

from app.settings import settings
from app.core.state_machine import *
from app.core import results
from app.core.results import FlowResult
from app.core.masking import mask_mobile_number
from app.ivalt.client import IvaltClient, TransportError
from app.ivalt.config import IvaltConfig
from app.store.models import AuthSession, AuthTransaction
import app.store.credential_repo as credential_repo
import app.observability.metrics as metrics
from app.observability.logging import log

FLOW = "auth"


class AuthenticationFlow:
    def __init__(self, config: IvaltConfig, client: Optional[IvaltClient] = None,
                 max_poll_attempts: Optional[int] = None):
        self.config = config
        self.client = client or IvaltClient(config)
        self.max_poll_attempts = int(max_poll_attempts or settings.AUTH_MAX_POLL_ATTEMPTS)

    # Host hooks ---------------------------------------------------------------

    def configured_for(self, user_id: str) -> bool:
        return credential_repo.is_configured_for(user_id)

    def set_required_actions(self, user_id: str) -> None:
        if not self.configured_for(user_id):
            credential_repo.add_required_action(user_id, credential_repo.CONFIGURE_IVALT)

    # Entry --------------------------------------------------------------------

    def authenticate(self, session: AuthSession, required: bool = True) -> FlowResult:
        user_id = session.userId
        if not self.configured_for(user_id):
            if required:
                credential_repo.add_required_action(user_id, credential_repo.CONFIGURE_IVALT)
                log(event="ivalt_auth_setup_required", userId=user_id)
                return FlowResult(status=results.SETUP_REQUIRED, state=AUTH_INIT)
            log(event="ivalt_auth_skipped", userId=user_id)
            return FlowResult(status=results.ATTEMPTED, state=AUTH_INIT)

        cred = credential_repo.find_any(user_id)
        identity = cred.mobileIdentity if cred else None
        if identity is None or not identity.is_complete():
            log(event="ivalt_auth_credential_incomplete", userId=user_id)
            return self._fail(AUTH_ERROR, ERR_NOT_CONFIGURED, CREDENTIAL_SETUP_REQUIRED, 401)

        try:
            transaction_id = self.client.submit_challenge(identity, username=session.username)
        except TransportError as e:
            log(event="ivalt_auth_send_failed", userId=user_id, error=str(e)[:500])
            return self._fail(AUTH_ERROR, ERR_SEND_FAILED, INTERNAL_ERROR, 500)

        AuthTransaction(transactionId=transaction_id, pollCount=0).store(session)
        log(event="ivalt_auth_submitted", userId=user_id, transactionId=transaction_id)
        return self._waiting(AUTH_SUBMITTED, session, identity.full_number)

    # Re-entry -----------------------------------------------------------------

    def action(self, session: AuthSession, action: Optional[str] = None) -> FlowResult:
        user_id = session.userId
        if action == "cancel":
            AuthTransaction.clear(session)
            log(event="ivalt_auth_cancelled", userId=user_id)
            return FlowResult(status=results.RESET, state=AUTH_RESET)

        txn = AuthTransaction.load(session)
        if txn is None:
            log(event="ivalt_auth_missing_transaction", userId=user_id)
            return self._fail(AUTH_ERROR, ERR_INTERNAL, INTERNAL_ERROR, 500)

        try:
            outcome = self.client.get_status(txn.transactionId)
        except TransportError as e:
            log(event="ivalt_auth_status_failed", userId=user_id, error=str(e)[:500])
            AuthTransaction.clear(session)
            return self._fail(AUTH_ERROR, ERR_STATUS_FAILED, INTERNAL_ERROR, 500)

        if outcome == APPROVED:
            AuthTransaction.clear(session)
            log(event="ivalt_auth_approved", userId=user_id)
            metrics.increment_outcome(FLOW, AUTH_APPROVED)
            return FlowResult(status=results.SUCCESS, state=AUTH_APPROVED)

        if outcome == REJECTED:
            AuthTransaction.clear(session)
            log(event="ivalt_auth_rejected", userId=user_id)
            return self._fail(AUTH_REJECTED, ERR_REJECTED, INVALID_CREDENTIALS, 401)

        if outcome in POLICY_DENIALS:
            AuthTransaction.clear(session)
            log(event="ivalt_auth_policy_denied", userId=user_id, outcome=outcome)
            return self._fail(AUTH_POLICY_DENIED, POLICY_ERRORS[outcome], INVALID_CREDENTIALS, 401)

        if outcome == PENDING:
            txn.pollCount += 1
            if txn.pollCount >= self.max_poll_attempts:
                AuthTransaction.clear(session)
                log(event="ivalt_auth_timeout", userId=user_id, pollCount=txn.pollCount)
                return self._fail(AUTH_TIMED_OUT, ERR_TIMEOUT, EXPIRED_CODE, 401)
            txn.store(session)
            return self._waiting(AUTH_POLLING, session, txn.transactionId)

        log(event="ivalt_auth_unknown_status", userId=user_id, outcome=outcome)
        AuthTransaction.clear(session)
        return self._fail(AUTH_ERROR, ERR_INTERNAL, INTERNAL_ERROR, 500)

    # Helpers ------------------------------------------------------------------

    def _waiting(self, state: str, session: AuthSession, full_number: str) -> FlowResult:
        return results.challenge(
            state,
            PAGE_AUTH,
            username=session.username,
            mobileNumber=mask_mobile_number(full_number),
            pollIntervalMs=self.config.pollIntervalMs,
        )

    def _fail(self, state: str, error: str, flow_error: str, http_status: int) -> FlowResult:
        metrics.increment_outcome(FLOW, state)
        return results.failure(state, error, flow_error, http_status)
