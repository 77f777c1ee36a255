"""Agent status models and the persisted status store."""

from .models import AgentStatus, StatusDocument, StatusRecord, project_name_from_path
from .store import StatusStore, StatusStoreError

__all__ = [
    "AgentStatus",
    "StatusDocument",
    "StatusRecord",
    "StatusStore",
    "StatusStoreError",
    "project_name_from_path",
]
