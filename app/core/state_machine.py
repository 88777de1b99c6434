# Minimal state constants (kept for clarity)

# Verification outcomes (classifier output; never persisted)
APPROVED = "APPROVED"
REJECTED = "REJECTED"
PENDING = "PENDING"
INVALID_TIMEZONE = "INVALID_TIMEZONE"
INVALID_GEOFENCE = "INVALID_GEOFENCE"
ERROR = "ERROR"

POLICY_DENIALS = (INVALID_TIMEZONE, INVALID_GEOFENCE)


# Authentication flow states

# No transaction yet; a challenge is issued on entry.
AUTH_INIT = "INIT"

# Challenge accepted by the verifier; waiting page rendered.
AUTH_SUBMITTED = "SUBMITTED"

# Re-entered at least once while the transaction is open.
AUTH_POLLING = "POLLING"

# Terminal states (absorbing)
AUTH_APPROVED = "APPROVED"
AUTH_REJECTED = "REJECTED"
AUTH_POLICY_DENIED = "POLICY_DENIED"
AUTH_TIMED_OUT = "TIMED_OUT"
AUTH_ERROR = "ERROR"

# Not a terminal: user cancelled, control returns upstream.
AUTH_RESET = "RESET"


# Enrollment flow states

# Mobile number form; also where every recoverable failure lands.
ENROLL_CAPTURING = "CAPTURING_IDENTITY"

# Challenge accepted; waiting page rendered.
ENROLL_SUBMITTED = "VERIFICATION_SUBMITTED"

# Re-entered while the verification is open.
ENROLL_POLLING = "POLLING"

# Terminal states
ENROLL_PERSISTED = "PERSISTED"
ENROLL_CANCELLED = "CANCELLED"

# Recoverable: the flow returns to ENROLL_CAPTURING with the matching error.
ENROLL_REJECTED = "REJECTED"
ENROLL_POLICY_DENIED = "POLICY_DENIED"
ENROLL_TIMED_OUT = "TIMED_OUT"
ENROLL_ERROR = "ERROR"


# Host flow-error classes for terminal authentication failures
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
EXPIRED_CODE = "EXPIRED_CODE"
INTERNAL_ERROR = "INTERNAL_ERROR"
CREDENTIAL_SETUP_REQUIRED = "CREDENTIAL_SETUP_REQUIRED"


# Message keys shown to the user
ERR_NOT_CONFIGURED = "ivaltNotConfigured"
ERR_SEND_FAILED = "ivaltSendFailed"
ERR_STATUS_FAILED = "ivaltStatusFailed"
ERR_INTERNAL = "ivaltInternalError"
ERR_REJECTED = "ivaltRejected"
ERR_INVALID_TIMEZONE = "ivaltInvalidTimezone"
ERR_INVALID_GEOFENCE = "ivaltInvalidGeofence"
ERR_TIMEOUT = "ivaltTimeout"
ERR_MOBILE_REQUIRED = "ivaltMobileNumberRequired"
ERR_COUNTRY_REQUIRED = "ivaltCountryCodeRequired"
ERR_VERIFICATION_FAILED = "ivaltVerificationFailed"
ERR_VERIFICATION_REJECTED = "ivaltVerificationRejected"

POLICY_ERRORS = {
    INVALID_TIMEZONE: ERR_INVALID_TIMEZONE,
    INVALID_GEOFENCE: ERR_INVALID_GEOFENCE,
}


# Pages the host renders
PAGE_AUTH = "ivalt-auth"
PAGE_SETUP = "ivalt-setup"
PAGE_SETUP_VERIFY = "ivalt-setup-verify"
PAGE_ERROR = "error"
