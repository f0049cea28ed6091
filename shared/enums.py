"""
Enums and constants used across the application.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle states of a parse job."""

    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PENDING


class OutboxAction(str, Enum):
    """Kinds of pending draft mutations."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SaveStatus(str, Enum):
    """Autosave state exposed to the UI layer."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class Industry(str, Enum):
    """Tenant industries with first-class parse support."""

    PRODUCTS = "products"
    MENU = "menu"
    SERVICES = "services"
    OFFERS = "offers"
    CONSULTATIONS = "consultations"


LOCAL_DRAFT_ID_PREFIX = "local-"
LOCAL_SNAPSHOT_PREFIX = "drafts-local-"
OUTBOX_PREFIX = "drafts-outbox-"
