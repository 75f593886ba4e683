# farmwise/agents/outcome.py

from dataclasses import dataclass
from typing import Any, Optional

from farmwise.core.errors import FarmWiseError


@dataclass(frozen=True)
class OperationOutcome:
    """What an agent hands back to the UI: the value on success, a user-facing notice on failure."""
    ok: bool
    value: Any = None
    message: str = ""
    error: Optional[FarmWiseError] = None

    @classmethod
    def success(cls, value: Any) -> "OperationOutcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, message: str, error: FarmWiseError) -> "OperationOutcome":
        return cls(ok=False, message=message, error=error)
