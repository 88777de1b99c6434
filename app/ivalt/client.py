import time
from typing import Optional

import httpx

from app.ivalt.config import IvaltConfig
from app.ivalt.classifier import RawResponse, classify
from app.store.models import MobileIdentity
from app.observability.logging import log
import app.observability.metrics as metrics

# POST {baseUrl}/biometric-auth-request           -> 200 when the push was sent
# POST {baseUrl}/biometric-geo-fence-auth-results -> 200 when approved
SUBMIT_PATH = "/biometric-auth-request"
STATUS_PATH = "/biometric-geo-fence-auth-results"


class TransportError(RuntimeError):
    """Network failure, non-200 submit, or missing credentials."""


class IvaltClient:
    """
    Stateless request/response wrapper around the two verifier endpoints.
    No retries here: the flows re-poll through repeated host invocations.
    """

    def __init__(self, config: IvaltConfig, http: Optional[httpx.Client] = None):
        self.config = config
        # Reuse a single client for keep-alive
        self._http = http or httpx.Client(timeout=config.timeout_sec)

    def _headers(self) -> dict:
        return {"Content-Type": "application/json", "x-api-key": self.config.apiKey}

    def _post(self, path: str, mobile: str) -> httpx.Response:
        if not self.config.configured:
            raise TransportError("iVALT API key is not configured")
        url = f"{self.config.baseUrl}{path}"
        start = time.time()
        try:
            resp = self._http.post(url, headers=self._headers(), json={"mobile": mobile},
                                   timeout=self.config.timeout_sec)
        except httpx.HTTPError as e:
            raise TransportError(f"iVALT request to {path} failed: {type(e).__name__}: {e}") from e
        finally:
            metrics.record_remote_latency(int((time.time() - start) * 1000))
        return resp

    def submit_challenge(self, identity: MobileIdentity, username: str = "") -> str:
        """
        Send the push to the user's device.
        The verifier issues no transaction id, so the full number is returned as one.
        """
        mobile = identity.full_number
        log(event="ivalt_send_attempt", mobile=mobile, username=username)
        resp = self._post(SUBMIT_PATH, mobile)
        if resp.status_code != 200:
            log(
                event="ivalt_send_failed",
                mobile=mobile,
                username=username,
                statusCode=int(resp.status_code),
                responseText=(resp.text or "")[:500],
            )
            raise TransportError(f"Failed to send notification: HTTP {resp.status_code}")
        log(event="ivalt_send_success", mobile=mobile, username=username)
        return mobile

    def check_status(self, transaction_id: str) -> RawResponse:
        resp = self._post(STATUS_PATH, transaction_id)
        return RawResponse(statusCode=int(resp.status_code), body=resp.text or "")

    def get_status(self, transaction_id: str) -> str:
        """check_status + classify, logging the classified outcome."""
        raw = self.check_status(transaction_id)
        outcome = classify(raw)
        log(
            event="ivalt_status_checked",
            transactionId=transaction_id,
            statusCode=raw.statusCode,
            outcome=outcome,
        )
        return outcome
