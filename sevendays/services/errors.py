from typing import Optional

RETRYABLE_STATUS = (429, 500, 503)


class NarrativeError(Exception):
    """Base class for failures of one narrative exchange."""


class ServiceError(NarrativeError):
    def __init__(self, message: str, status_code: Optional[int] = None, retryable: Optional[bool] = None):
        super().__init__(message)
        self.status_code = status_code
        if retryable is None:
            retryable = status_code in RETRYABLE_STATUS
        self.retryable = retryable

    @property
    def overloaded(self) -> bool:
        return self.status_code == 503


class ExtractionError(NarrativeError):
    """Response JSON arrived but lacks candidates[0].content.parts[0].text."""


class ParseError(NarrativeError):
    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw
