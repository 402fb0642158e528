"""
Append-only audit log.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..models.audit import AuditLogEntryModel
from ..store import ParkStore, new_id

logger = logging.getLogger(__name__)


class AuditLog:
    """Records every mutating action; entries are never changed or removed."""

    def __init__(
        self,
        store: ParkStore,
        clock: Callable[[], datetime] = datetime.now,
        default_actor: str = "admin",
    ):
        self.store = store
        self.clock = clock
        self.default_actor = default_actor

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        payload: Optional[Dict[str, Any]] = None,
        actor: Optional[str] = None,
    ) -> AuditLogEntryModel:
        """Append an entry attributed to ``actor`` (or the default actor)."""
        entry = AuditLogEntryModel(
            audit_id=new_id("audit"),
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            payload=dict(payload or {}),
            performed_by=actor or self.default_actor,
            performed_at=self.clock(),
        )
        self.store.audit_logs.append(entry)
        logger.debug(f"Audit {action} on {entity_type} {entity_id} by {entry.performed_by}")
        return entry

    def get_logs(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> List[AuditLogEntryModel]:
        """Entries matching the filters, newest first."""
        entries = [
            (position, entry)
            for position, entry in enumerate(self.store.audit_logs)
            if (entity_type is None or entry.entity_type == entity_type)
            and (entity_id is None or entry.entity_id == entity_id)
        ]
        # Append order breaks ties between entries sharing a timestamp
        entries.sort(key=lambda item: (item[1].performed_at, item[0]), reverse=True)
        return [entry for _, entry in entries]
