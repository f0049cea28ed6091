TRANSIENT_STATUS_CODES = {408, 425, 429}


class DraftStoreError(Exception):
    """Error returned by the remote Draft Store.

    ``status_code`` is the HTTP status, or None when the request never got a
    response (connection failure, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def transient(self) -> bool:
        """Whether retrying the same request may succeed."""
        if self.status_code is None:
            return True
        return self.status_code >= 500 or self.status_code in TRANSIENT_STATUS_CODES

    @property
    def not_found(self) -> bool:
        return self.status_code == 404

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (status {self.status_code})"


class OutboxConflictError(Exception):
    """Raised when a create/update is enqueued behind a pending delete."""
