from dataclasses import dataclass
from typing import Optional


@dataclass
class RunState:
    recordId: str = ""

    # queued/running/success/fail
    status: str = "queued"
    # success/recoverable/unexpected, empty until finished
    outcome: str = ""

    einNumber: Optional[str] = None
    referenceNumber: Optional[str] = None
    errorMessage: Optional[str] = None
    artifactUrl: Optional[str] = None

    # Ops
    jobId: Optional[str] = None
    startedAtMs: int = 0
    finishedAtMs: int = 0
    attempts: int = 0
