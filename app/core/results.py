from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, Optional

from app.core.state_machine import PAGE_ERROR

# What the host should do next
CHALLENGE = "challenge"            # render `page` and wait for the next interaction
SUCCESS = "success"
FAILURE = "failure"
RESET = "reset"                    # restart the login flow upstream
SETUP_REQUIRED = "setup_required"  # user must enroll first
ATTEMPTED = "attempted"            # authenticator skipped for this user
SKIPPED = "skipped"                # user opted out of enrollment


@dataclass
class FlowResult:
    status: str
    state: str
    page: Optional[str] = None
    error: Optional[str] = None
    field: Optional[str] = None
    flowError: Optional[str] = None
    httpStatus: int = 200
    attributes: Dict[str, Any] = dc_field(default_factory=dict)

    @property
    def terminal(self) -> bool:
        return self.status in (SUCCESS, FAILURE, SKIPPED)


def challenge(state: str, page: str, error: Optional[str] = None, field_name: Optional[str] = None,
              **attributes) -> FlowResult:
    return FlowResult(status=CHALLENGE, state=state, page=page, error=error, field=field_name,
                      attributes=attributes)


def failure(state: str, error: str, flow_error: str, http_status: int) -> FlowResult:
    return FlowResult(status=FAILURE, state=state, page=PAGE_ERROR, error=error,
                      flowError=flow_error, httpStatus=http_status)
