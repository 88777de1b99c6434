"""
One-time iVALT setup (the CONFIGURE_IVALT required action).

Capture phone number -> push a verification challenge -> poll until approved,
then replace the user's credential. Every recoverable failure (rejection,
policy denial, timeout, verifier error) lands back on the capture form with
the transaction cleared so the next attempt starts clean.

Timeout here is wall-clock based (startedAt note), unlike the attempt-count
ceiling of the login flow.
"""
from typing import Mapping, Optional

from app.settings import settings
from app.core.state_machine import *
from app.core import results
from app.core.results import FlowResult
from app.ivalt.client import IvaltClient, TransportError
from app.ivalt.config import IvaltConfig
from app.store.models import AuthSession, EnrollmentTransaction, MobileIdentity
import app.store.credential_repo as credential_repo
import app.observability.metrics as metrics
from app.observability.logging import log
from app.utils.time import now_ms, elapsed_ms

FLOW = "enroll"


class EnrollmentFlow:
    def __init__(self, config: IvaltConfig, client: Optional[IvaltClient] = None,
                 timeout_ms: Optional[int] = None):
        self.config = config
        self.client = client or IvaltClient(config)
        self.timeout_ms = int(timeout_ms or settings.ENROLL_TIMEOUT_MS)

    def challenge(self, session: AuthSession) -> FlowResult:
        """Initial capture form."""
        return results.challenge(ENROLL_CAPTURING, PAGE_SETUP)

    def process(self, session: AuthSession, form: Mapping[str, Optional[str]]) -> FlowResult:
        if form.get("action") == "cancel":
            return self._cancel(session)

        # An open verification takes precedence over whatever the form carries.
        txn = EnrollmentTransaction.load(session)
        if txn is None:
            return self._submit(session, form)
        return self._poll(session, txn)

    # Steps --------------------------------------------------------------------

    def _cancel(self, session: AuthSession) -> FlowResult:
        EnrollmentTransaction.clear(session)
        credential_repo.remove_required_action(session.userId, credential_repo.CONFIGURE_IVALT)
        log(event="ivalt_enroll_cancelled", userId=session.userId)
        metrics.increment_outcome(FLOW, ENROLL_CANCELLED)
        return FlowResult(status=results.SKIPPED, state=ENROLL_CANCELLED)

    def _submit(self, session: AuthSession, form: Mapping[str, Optional[str]]) -> FlowResult:
        mobile_number = (form.get("mobileNumber") or "").strip()
        country_code = (form.get("countryCode") or "").strip()

        if not mobile_number:
            return results.challenge(ENROLL_CAPTURING, PAGE_SETUP, ERR_MOBILE_REQUIRED, "mobileNumber")
        if not country_code:
            return results.challenge(ENROLL_CAPTURING, PAGE_SETUP, ERR_COUNTRY_REQUIRED, "countryCode")

        identity = MobileIdentity(mobileNumber=mobile_number, countryCode=country_code)
        try:
            transaction_id = self.client.submit_challenge(identity, username=session.username)
        except TransportError as e:
            log(event="ivalt_enroll_send_failed", userId=session.userId, error=str(e)[:500])
            metrics.increment_outcome(FLOW, ENROLL_ERROR)
            return results.challenge(ENROLL_CAPTURING, PAGE_SETUP, ERR_VERIFICATION_FAILED)

        EnrollmentTransaction(
            transactionId=transaction_id,
            startedAtMs=now_ms(),
            mobileIdentity=identity,
        ).store(session)
        log(event="ivalt_enroll_submitted", userId=session.userId, transactionId=transaction_id)
        return self._waiting(ENROLL_SUBMITTED, identity)

    def _poll(self, session: AuthSession, txn: EnrollmentTransaction) -> FlowResult:
        user_id = session.userId

        if txn.startedAtMs is not None:
            waited = elapsed_ms(txn.startedAtMs, now_ms())
            if waited > self.timeout_ms:
                log(event="ivalt_enroll_timeout", userId=user_id, elapsedMs=waited)
                return self._back_to_capture(session, ENROLL_TIMED_OUT, ERR_TIMEOUT)

        try:
            outcome = self.client.get_status(txn.transactionId)
        except TransportError as e:
            log(event="ivalt_enroll_status_failed", userId=user_id, error=str(e)[:500])
            return self._back_to_capture(session, ENROLL_ERROR, ERR_VERIFICATION_FAILED)

        if outcome == APPROVED:
            return self._persist(session, txn)

        if outcome == REJECTED:
            log(event="ivalt_enroll_rejected", userId=user_id)
            return self._back_to_capture(session, ENROLL_REJECTED, ERR_VERIFICATION_REJECTED)

        if outcome in POLICY_DENIALS:
            log(event="ivalt_enroll_policy_denied", userId=user_id, outcome=outcome)
            return self._back_to_capture(session, ENROLL_POLICY_DENIED, POLICY_ERRORS[outcome])

        if outcome == ERROR:
            return self._back_to_capture(session, ENROLL_ERROR, ERR_VERIFICATION_FAILED)

        # Pending: leave the transaction untouched and keep waiting.
        return self._waiting(ENROLL_POLLING, txn.mobileIdentity)

    def _persist(self, session: AuthSession, txn: EnrollmentTransaction) -> FlowResult:
        user_id = session.userId
        identity = txn.mobileIdentity
        if not identity.is_complete():
            log(event="ivalt_enroll_identity_missing", userId=user_id)
            return self._back_to_capture(session, ENROLL_ERROR, ERR_VERIFICATION_FAILED)

        # Not atomic: a crash between the two leaves zero credentials and the user re-enrolls.
        removed = credential_repo.delete_all(user_id)
        cred = credential_repo.create(user_id, identity)
        credential_repo.remove_required_action(user_id, credential_repo.CONFIGURE_IVALT)
        EnrollmentTransaction.clear(session)

        log(event="ivalt_enroll_persisted", userId=user_id, credentialId=cred.id, replaced=removed)
        metrics.increment_outcome(FLOW, ENROLL_PERSISTED)
        return FlowResult(status=results.SUCCESS, state=ENROLL_PERSISTED)

    # Helpers ------------------------------------------------------------------

    def _back_to_capture(self, session: AuthSession, reason: str, error: str) -> FlowResult:
        EnrollmentTransaction.clear(session)
        metrics.increment_outcome(FLOW, reason)
        return results.challenge(ENROLL_CAPTURING, PAGE_SETUP, error, outcome=reason)

    def _waiting(self, state: str, identity: MobileIdentity) -> FlowResult:
        return results.challenge(
            state,
            PAGE_SETUP_VERIFY,
            mobileNumber=identity.masked,
            pollIntervalMs=self.config.pollIntervalMs,
        )
