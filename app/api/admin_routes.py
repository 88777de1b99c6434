from fastapi import APIRouter, Depends
from app.api.auth import require_admin
from app.core.masking import mask_mobile_number
from app.store.session_repo import load_notes
from app.store.models import (
    AUTH_NOTE_KEYS,
    NOTE_TRANSACTION_ID,
    NOTE_VERIFICATION_TRANSACTION_ID,
    NOTE_MOBILE_NUMBER,
)
import app.observability.metrics as metrics

router = APIRouter(prefix="/admin", tags=["admin"])

_PHONE_NOTES = {NOTE_TRANSACTION_ID, NOTE_VERIFICATION_TRANSACTION_ID, NOTE_MOBILE_NUMBER}


@router.get("/session/{session_id}")
def get_session_snapshot(session_id: str, _=Depends(require_admin)):
    """Masked view of the transaction notes held for a login session."""
    notes = load_notes(session_id)
    masked = {k: (mask_mobile_number(v) if k in _PHONE_NOTES else v) for k, v in notes.items()}
    return {
        "sessionId": session_id,
        "authTransactionOpen": bool(notes.get(NOTE_TRANSACTION_ID)),
        "enrollmentTransactionOpen": bool(notes.get(NOTE_VERIFICATION_TRANSACTION_ID)),
        "authNotes": {k: masked[k] for k in AUTH_NOTE_KEYS if k in masked},
        "notes": masked,
    }


@router.get("/stats")
def get_stats(_=Depends(require_admin)):
    """Outcome counters and verifier latency backed by Redis."""
    return metrics.get_stats_snapshot()
