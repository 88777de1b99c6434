import json
import pytest
from app.store.models import (
    AuthSession,
    AuthTransaction,
    Credential,
    EnrollmentTransaction,
    MobileIdentity,
    NOTE_TRANSACTION_ID,
    NOTE_POLL_COUNT,
    NOTE_VERIFICATION_TRANSACTION_ID,
    NOTE_VERIFICATION_START_TIME,
    NOTE_MOBILE_NUMBER,
    NOTE_COUNTRY_CODE,
)


def test_mobile_identity_round_trip():
    ident = MobileIdentity(mobileNumber="5551234", countryCode="+1")
    assert MobileIdentity.from_json(ident.to_json()) == ident
    assert json.loads(ident.to_json()) == {"mobileNumber": "5551234", "countryCode": "+1"}


def test_mobile_identity_helpers():
    ident = MobileIdentity(mobileNumber="9876543210", countryCode="+91")
    assert ident.full_number == "+919876543210"
    assert ident.masked == "****3210"
    assert ident.is_complete()
    assert not MobileIdentity(mobileNumber=" ", countryCode="+1").is_complete()


def test_mobile_identity_rejects_non_object():
    with pytest.raises(ValueError):
        MobileIdentity.from_json("[]")


def test_credential_record_round_trip():
    cred = Credential(id="c1", userId="u1", mobileIdentity=MobileIdentity("5551234", "+1"), createdDate=123)
    rec = cred.to_record()
    assert rec["type"] == "ivalt"
    assert rec["userLabel"] == "iVALT Authenticator"
    assert json.loads(rec["credentialData"]) == {"mobileNumber": "5551234", "countryCode": "+1"}
    assert Credential.from_record(json.loads(json.dumps(rec))) == cred


def test_auth_transaction_notes():
    session = AuthSession(sessionId="s1", notes={"other": "keep"})
    assert AuthTransaction.load(session) is None

    AuthTransaction(transactionId="+15551234", pollCount=7).store(session)
    assert session.notes[NOTE_TRANSACTION_ID] == "+15551234"
    assert session.notes[NOTE_POLL_COUNT] == "7"
    assert AuthTransaction.load(session) == AuthTransaction("+15551234", 7)

    AuthTransaction.clear(session)
    assert session.notes == {"other": "keep"}


def test_auth_transaction_tolerates_bad_count():
    session = AuthSession(sessionId="s1", notes={NOTE_TRANSACTION_ID: "+1", NOTE_POLL_COUNT: "x"})
    assert AuthTransaction.load(session).pollCount == 0


def test_enrollment_transaction_notes():
    session = AuthSession(sessionId="s1")
    txn = EnrollmentTransaction(
        transactionId="+15551234",
        startedAtMs=1000,
        mobileIdentity=MobileIdentity("5551234", "+1"),
    )
    txn.store(session)
    assert session.notes == {
        NOTE_VERIFICATION_TRANSACTION_ID: "+15551234",
        NOTE_VERIFICATION_START_TIME: "1000",
        NOTE_MOBILE_NUMBER: "5551234",
        NOTE_COUNTRY_CODE: "+1",
    }
    assert EnrollmentTransaction.load(session) == txn

    EnrollmentTransaction.clear(session)
    assert session.notes == {}


def test_enrollment_transaction_without_start_time():
    session = AuthSession(sessionId="s1", notes={NOTE_VERIFICATION_TRANSACTION_ID: "+15551234"})
    txn = EnrollmentTransaction.load(session)
    assert txn.startedAtMs is None
    assert txn.mobileIdentity == MobileIdentity("", "")
