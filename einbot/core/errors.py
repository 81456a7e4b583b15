from typing import List, Optional


class AutomationError(Exception):
    """A field interaction or page transition failed after its local retries."""

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class InputValidationError(ValueError):
    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid input")


class UploadError(RuntimeError):
    def __init__(self, name: str, attempts: int, last_error: str = ""):
        self.name = name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"upload of {name} failed after {attempts} attempts: {last_error}")


class CrmError(RuntimeError):
    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = (body or "")[:500]
        super().__init__(f"system of record returned {status_code}: {self.body}")


class SessionUnavailable(RuntimeError):
    pass


class RunInProgress(RuntimeError):
    pass


class RunCancelled(RuntimeError):
    pass
