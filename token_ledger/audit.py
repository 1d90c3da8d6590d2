"""
Audit Trail Module

Hash-chained immutable audit log with SHA-256 for tamper detection.
Every committed ledger mutation is logged here, inside the same unit of work
as the mutation itself, so a rolled-back action leaves no audit entry.
"""

import hashlib
import json
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from enum import Enum
import uuid

from .storage import StorageInterface, StorageRecord


class AuditEventType(Enum):
    """Types of audit events"""
    TOKEN_CREATED = "token_created"
    TOKENS_ISSUED = "tokens_issued"
    TOKENS_TRANSFERRED = "tokens_transferred"
    TOKENS_BURNED = "tokens_burned"

    # Relay events
    PROPOSAL_STAKED = "proposal_staked"
    VOTE_STAKED = "vote_staked"


@dataclass
class AuditEvent(StorageRecord):
    """
    Immutable audit event with hash chaining for tamper detection
    """
    sequence: int
    event_type: AuditEventType
    entity_type: str  # "token", "account", "proposal", ...
    entity_id: str
    previous_hash: str
    current_hash: str
    metadata: Dict[str, Any]
    actor: Optional[str] = None  # Identity whose authority the action ran under

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this event
        Hash includes all fields except current_hash to prevent circular reference
        """
        hash_data = {
            'id': self.id,
            'sequence': self.sequence,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'previous_hash': self.previous_hash,
            'actor': self.actor,
            'metadata': self.metadata
        }
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['event_type'] = self.event_type.value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEvent':
        data = dict(data)
        data['created_at'] = datetime.fromisoformat(data['created_at'])
        data['updated_at'] = datetime.fromisoformat(data['updated_at'])
        data['event_type'] = AuditEventType(data['event_type'])
        return cls(**data)


class AuditTrail:
    """
    Hash-chained audit trail for tamper detection
    """

    def __init__(self, storage: StorageInterface, table_name: str = "audit_events"):
        self.storage = storage
        self.table_name = table_name
        # One-row table holding the chain tail; updated alongside every event
        self.head_table = f"{table_name}_head"

    def _load_events(self) -> List[AuditEvent]:
        events = [AuditEvent.from_dict(data) for data in self.storage.load_all(self.table_name)]
        events.sort(key=lambda e: e.sequence)
        return events

    def _chain_head(self) -> tuple:
        """Return (last sequence, last hash); read from storage so rollbacks are respected"""
        head = self.storage.load(self.head_table, "head")
        if not head:
            return 0, ""
        return head['sequence'], head['hash']

    def log_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        metadata: Optional[Dict[str, Any]] = None,
        actor: Optional[str] = None
    ) -> AuditEvent:
        """
        Log an audit event with hash chaining

        Args:
            event_type: Type of audit event
            entity_type: Type of entity being audited
            entity_id: ID of the entity
            metadata: Additional event-specific data (JSON-serializable)
            actor: Identity that authorized the action

        Returns:
            Created AuditEvent
        """
        now = datetime.now(timezone.utc)
        last_sequence, last_hash = self._chain_head()

        event = AuditEvent(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            sequence=last_sequence + 1,
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            previous_hash=last_hash,
            current_hash="",
            actor=actor,
            metadata=metadata or {}
        )
        event.current_hash = event.calculate_hash()

        self.storage.save(self.table_name, event.id, event.to_dict())
        self.storage.save(self.head_table, "head", {"sequence": event.sequence, "hash": event.current_hash})
        return event

    def get_events_for_entity(self, entity_type: str, entity_id: str) -> List[AuditEvent]:
        """Get all audit events for a specific entity, oldest first"""
        return [
            e for e in self._load_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_events_by_type(self, event_type: AuditEventType) -> List[AuditEvent]:
        return [e for e in self._load_events() if e.event_type == event_type]

    def get_all_events(self) -> List[AuditEvent]:
        return self._load_events()

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire audit chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_events': 0,
            'hash_errors': [],
            'chain_breaks': []
        }

        events = self._load_events()
        result['total_events'] = len(events)

        previous_hash = ""
        for position, event in enumerate(events):
            if not event.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({
                    'event_id': event.id,
                    'position': position,
                    'expected_hash': event.calculate_hash(),
                    'actual_hash': event.current_hash
                })
            if event.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({
                    'event_id': event.id,
                    'position': position,
                    'expected_previous_hash': previous_hash,
                    'actual_previous_hash': event.previous_hash
                })
            previous_hash = event.current_hash

        return result

    def count_events(self) -> int:
        return self.storage.count(self.table_name)

    def get_latest_hash(self) -> Optional[str]:
        _, last_hash = self._chain_head()
        return last_hash or None
