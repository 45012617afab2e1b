"""
Queued mutation records and the sync tags that replay them.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class MutationKind(Enum):
    """Kinds of writes that can be captured while offline."""
    SCORE = "score"
    TIMER_EVENT = "timer_event"


class SyncTag(Enum):
    """Deferred-trigger identifiers, one per mutation kind."""
    SCORE_SUBMISSION = "score-submission"
    TIMER_EVENTS = "timer-events"

    @property
    def kind(self) -> MutationKind:
        return TAG_TO_KIND[self]

    @classmethod
    def for_kind(cls, kind: MutationKind) -> "SyncTag":
        for tag, tag_kind in TAG_TO_KIND.items():
            if tag_kind is kind:
                return tag
        raise ValueError(f"No sync tag for kind {kind}")

    @classmethod
    def parse(cls, value: str) -> Optional["SyncTag"]:
        """Tag for a raw value, or None if unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


TAG_TO_KIND: Dict[SyncTag, MutationKind] = {
    SyncTag.SCORE_SUBMISSION: MutationKind.SCORE,
    SyncTag.TIMER_EVENTS: MutationKind.TIMER_EVENT,
}


@dataclass
class MutationRecord:
    """
    A durably stored write awaiting delivery to the origin.

    Attributes:
        id: Store-assigned identifier
        kind: Mutation kind
        payload: Opaque domain object (JSON-serializable)
        created_at: When the record was enqueued (UTC)
        synced: True once the origin accepted it; never reset
    """
    kind: MutationKind
    payload: Dict[str, Any]
    created_at: datetime = field(default_factory=datetime.utcnow)
    synced: bool = False
    id: Optional[int] = None

    def to_submission(self) -> Dict[str, Any]:
        """Body POSTed to the origin when replaying this record."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "createdAt": self.created_at.isoformat() + "Z",
            "payload": self.payload,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Representation returned to the host application."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "payload": self.payload,
            "createdAt": self.created_at.isoformat() + "Z",
            "synced": self.synced,
        }
