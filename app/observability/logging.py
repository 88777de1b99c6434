import json
import time
from app.settings import settings
from app.core.masking import mask_mobile_number

# Phone numbers double as transaction ids, so both are PII.
PHONE_KEYS = {"mobile", "mobileNumber", "fullNumber", "transactionId"}
SECRET_KEYS = {"apiKey", "x-api-key"}


def _redact_value(k, v):
    if k in SECRET_KEYS:
        return "[REDACTED]" if v else v
    if k in PHONE_KEYS and isinstance(v, str):
        return mask_mobile_number(v)
    if isinstance(v, dict):
        return {sk: _redact_value(sk, sv) for sk, sv in v.items()}
    return v


def log(event: str, **fields):
    payload = {"ts": int(time.time()), "event": event}

    if settings.ENABLE_PII_REDACTION:
        payload.update({k: _redact_value(k, v) for k, v in fields.items()})
    else:
        payload.update(fields)

    print(json.dumps(payload, ensure_ascii=False, default=str))
