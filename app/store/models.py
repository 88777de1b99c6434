import json
from dataclasses import dataclass, field
from typing import Dict, Optional

from app.core.masking import mask_mobile_number

CREDENTIAL_TYPE = "ivalt"
DEFAULT_CREDENTIAL_LABEL = "iVALT Authenticator"

# Session-note keys shared with the host flow engine (names are part of the contract).
NOTE_TRANSACTION_ID = "ivaltTransactionId"
NOTE_POLL_COUNT = "ivaltPollCount"
NOTE_VERIFICATION_TRANSACTION_ID = "ivaltVerificationTransactionId"
NOTE_VERIFICATION_START_TIME = "ivaltVerificationStartTime"
NOTE_MOBILE_NUMBER = "ivaltMobileNumber"
NOTE_COUNTRY_CODE = "ivaltCountryCode"

AUTH_NOTE_KEYS = (NOTE_TRANSACTION_ID, NOTE_POLL_COUNT)
ENROLLMENT_NOTE_KEYS = (
    NOTE_VERIFICATION_TRANSACTION_ID,
    NOTE_VERIFICATION_START_TIME,
    NOTE_MOBILE_NUMBER,
    NOTE_COUNTRY_CODE,
)


@dataclass(frozen=True)
class MobileIdentity:
    mobileNumber: str
    countryCode: str

    @property
    def full_number(self) -> str:
        # The remote verifier expects country code and number concatenated, e.g. +15551234
        return f"{self.countryCode}{self.mobileNumber}"

    @property
    def masked(self) -> str:
        return mask_mobile_number(self.full_number)

    def is_complete(self) -> bool:
        return bool((self.mobileNumber or "").strip()) and bool((self.countryCode or "").strip())

    def to_json(self) -> str:
        return json.dumps({"mobileNumber": self.mobileNumber, "countryCode": self.countryCode})

    @classmethod
    def from_json(cls, raw: str) -> "MobileIdentity":
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("credential data must be a JSON object")
        return cls(
            mobileNumber=data.get("mobileNumber") or "",
            countryCode=data.get("countryCode") or "",
        )


@dataclass
class Credential:
    id: str
    userId: str
    mobileIdentity: MobileIdentity
    userLabel: str = DEFAULT_CREDENTIAL_LABEL
    createdDate: int = 0
    type: str = CREDENTIAL_TYPE

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "userId": self.userId,
            "type": self.type,
            "userLabel": self.userLabel,
            "createdDate": int(self.createdDate),
            "credentialData": self.mobileIdentity.to_json(),
        }

    @classmethod
    def from_record(cls, record: dict) -> "Credential":
        return cls(
            id=record["id"],
            userId=record.get("userId") or "",
            mobileIdentity=MobileIdentity.from_json(record.get("credentialData") or "{}"),
            userLabel=record.get("userLabel") or DEFAULT_CREDENTIAL_LABEL,
            createdDate=int(record.get("createdDate") or 0),
            type=record.get("type") or CREDENTIAL_TYPE,
        )


@dataclass
class AuthSession:
    """The host's per-login-attempt scope. `notes` is the untyped string map it persists."""
    sessionId: str
    userId: str = ""
    username: str = ""
    notes: Dict[str, str] = field(default_factory=dict)


@dataclass
class AuthTransaction:
    transactionId: str
    pollCount: int = 0

    @classmethod
    def load(cls, session: AuthSession) -> Optional["AuthTransaction"]:
        txn_id = session.notes.get(NOTE_TRANSACTION_ID)
        if not txn_id:
            return None
        try:
            count = int(session.notes.get(NOTE_POLL_COUNT) or 0)
        except ValueError:
            count = 0
        return cls(transactionId=txn_id, pollCount=count)

    def store(self, session: AuthSession) -> None:
        session.notes[NOTE_TRANSACTION_ID] = self.transactionId
        session.notes[NOTE_POLL_COUNT] = str(int(self.pollCount))

    @staticmethod
    def clear(session: AuthSession) -> None:
        for k in AUTH_NOTE_KEYS:
            session.notes.pop(k, None)


@dataclass
class EnrollmentTransaction:
    transactionId: str
    startedAtMs: Optional[int]
    mobileIdentity: MobileIdentity

    @classmethod
    def load(cls, session: AuthSession) -> Optional["EnrollmentTransaction"]:
        txn_id = session.notes.get(NOTE_VERIFICATION_TRANSACTION_ID)
        if not txn_id:
            return None
        started = session.notes.get(NOTE_VERIFICATION_START_TIME)
        try:
            started_ms = int(started) if started else None
        except ValueError:
            started_ms = None
        identity = MobileIdentity(
            mobileNumber=session.notes.get(NOTE_MOBILE_NUMBER) or "",
            countryCode=session.notes.get(NOTE_COUNTRY_CODE) or "",
        )
        return cls(transactionId=txn_id, startedAtMs=started_ms, mobileIdentity=identity)

    def store(self, session: AuthSession) -> None:
        session.notes[NOTE_VERIFICATION_TRANSACTION_ID] = self.transactionId
        if self.startedAtMs is not None:
            session.notes[NOTE_VERIFICATION_START_TIME] = str(int(self.startedAtMs))
        session.notes[NOTE_MOBILE_NUMBER] = self.mobileIdentity.mobileNumber
        session.notes[NOTE_COUNTRY_CODE] = self.mobileIdentity.countryCode

    @staticmethod
    def clear(session: AuthSession) -> None:
        for k in ENROLLMENT_NOTE_KEYS:
            session.notes.pop(k, None)
