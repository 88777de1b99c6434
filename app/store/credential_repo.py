"""
Credential storage for iVALT identities.

Records live in a Redis hash per user, one field per credential id. The store
does not enforce "one credential per user"; the enrollment flow does that with
delete-then-create.
"""
import json
import uuid
from typing import List, Optional, Set

from app.store.redis_conn import get_redis
from app.store.models import Credential, MobileIdentity, CREDENTIAL_TYPE, DEFAULT_CREDENTIAL_LABEL
from app.utils.time import now_ms
from app.observability.logging import log

CONFIGURE_IVALT = "CONFIGURE_IVALT"

CREDENTIAL_TYPE_METADATA = {
    "type": CREDENTIAL_TYPE,
    "category": "two-factor",
    "displayName": "iVALT Authenticator",
    "helpText": "Biometric authentication using your mobile device with iVALT app",
    "iconCssClass": "kcAuthenticatorIvaltClass",
    "createAction": CONFIGURE_IVALT,
    "removeable": True,
}


def _cred_key(user_id: str) -> str:
    return f"credentials:{CREDENTIAL_TYPE}:{user_id}"


def _actions_key(user_id: str) -> str:
    return f"user:{user_id}:required_actions"


def create(user_id: str, identity: MobileIdentity, label: str = DEFAULT_CREDENTIAL_LABEL) -> Credential:
    if not identity.is_complete():
        raise ValueError("mobile identity requires both mobileNumber and countryCode")
    cred = Credential(
        id=str(uuid.uuid4()),
        userId=user_id,
        mobileIdentity=identity,
        userLabel=label,
        createdDate=now_ms(),
    )
    get_redis().hset(_cred_key(user_id), cred.id, json.dumps(cred.to_record()))
    log(event="credential_created", userId=user_id, credentialId=cred.id, fullNumber=identity.full_number)
    return cred


def delete(user_id: str, credential_id: str) -> bool:
    removed = int(get_redis().hdel(_cred_key(user_id), credential_id) or 0)
    if removed:
        log(event="credential_deleted", userId=user_id, credentialId=credential_id)
    return removed > 0


def delete_all(user_id: str) -> int:
    """Remove every iVALT credential of the user, unreadable ones included; returns how many were removed."""
    count = 0
    for credential_id in sorted(get_redis().hkeys(_cred_key(user_id)) or []):
        if delete(user_id, credential_id):
            count += 1
    return count


def list_for_user(user_id: str) -> List[Credential]:
    raw = get_redis().hgetall(_cred_key(user_id)) or {}
    creds = []
    for credential_id, value in raw.items():
        try:
            creds.append(Credential.from_record(json.loads(value)))
        except (TypeError, ValueError, KeyError) as e:
            # Skip corrupt records; login then reports the user as not configured
            log(event="credential_record_unreadable", userId=user_id, credentialId=credential_id,
                errorType=type(e).__name__)
    return sorted(creds, key=lambda c: (c.createdDate, c.id))


def find_any(user_id: str) -> Optional[Credential]:
    creds = list_for_user(user_id)
    return creds[0] if creds else None


def is_configured_for(user_id: str) -> bool:
    if not user_id:
        return False
    return int(get_redis().hlen(_cred_key(user_id)) or 0) > 0


# Required actions ------------------------------------------------------------

def add_required_action(user_id: str, action: str = CONFIGURE_IVALT) -> None:
    get_redis().sadd(_actions_key(user_id), action)


def remove_required_action(user_id: str, action: str = CONFIGURE_IVALT) -> None:
    get_redis().srem(_actions_key(user_id), action)


def required_actions(user_id: str) -> Set[str]:
    return set(get_redis().smembers(_actions_key(user_id)) or set())
