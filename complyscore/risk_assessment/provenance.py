# -*- coding: utf-8 -*-
"""
Assessment Provenance Tracker

SHA-256 chained audit trail of engine operations: responses recorded,
suggestions proposed and applied, tier promotions, retakes and scores.
Every suggestion's strategy and data sources end up here so that inferred
answers can be traced back to the facts that produced them.

Guarantees:
    - All hashes are deterministic SHA-256 over sorted-key JSON
    - Chain hashing links operations in sequence
    - JSON export for external audit systems

Example:
    >>> from complyscore.risk_assessment.provenance import ProvenanceTracker
    >>> tracker = ProvenanceTracker()
    >>> entry_id = tracker.record(
    ...     operation="response_recorded",
    ...     assessment_id="asm_1",
    ...     details={"question_id": "admin_001", "answer": "yes"},
    ... )
    >>> tracker.verify_chain()
    True

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, List, Optional, Union

from complyscore.risk_assessment.models import OperationType, ProvenanceEntry

logger = logging.getLogger(__name__)


def _canonical(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def hash_payload(data: Any) -> str:
    """Compute SHA-256 over the canonical JSON form of ``data``.

    Args:
        data: JSON-serialisable value. Sets are hashed as sorted lists and
            other non-serialisable leaves use ``str``.

    Returns:
        Hex-encoded SHA-256 hash.
    """
    serialized = json.dumps(data, sort_keys=True, default=_canonical)
    return hashlib.sha256(serialized.encode()).hexdigest()


class ProvenanceTracker:
    """Tracks engine operations with SHA-256 chain hashing.

    When more than ``max_entries`` are held the oldest entries are dropped and
    the hash of the last dropped entry becomes the verification anchor.

    Attributes:
        _entries: Ordered list of provenance entries.
        _last_chain_hash: Most recent chain hash for linking.
        _anchor_hash: Chain hash preceding the oldest retained entry.
    """

    _GENESIS_HASH = hashlib.sha256(b"complyscore-risk-assessment-genesis").hexdigest()

    def __init__(self, max_entries: int = 10000) -> None:
        self.max_entries = max_entries
        self._entries: List[ProvenanceEntry] = []
        self._last_chain_hash: str = self._GENESIS_HASH
        self._anchor_hash: str = self._GENESIS_HASH
        logger.info("ProvenanceTracker initialized (max_entries=%d)", max_entries)

    def record(
        self,
        operation: Union[str, OperationType],
        assessment_id: str,
        details: Optional[Dict[str, Any]] = None,
        actor: str = "system",
    ) -> str:
        """Append an operation to the chained audit trail.

        Args:
            operation: Operation type (enum or its value).
            assessment_id: Assessment the operation applies to.
            details: Operation-specific payload.
            actor: User or component performing the operation.

        Returns:
            The entry_id of the new entry.
        """
        op = OperationType(operation) if isinstance(operation, str) else operation
        entry = ProvenanceEntry(
            operation=op,
            assessment_id=assessment_id,
            actor=actor,
            details=details or {},
        )
        entry_hash = hash_payload(self._entry_payload(entry))
        chain_hash = self._link(self._last_chain_hash, entry_hash)
        entry.provenance_hash = chain_hash

        self._entries.append(entry)
        self._last_chain_hash = chain_hash
        self._trim()

        logger.debug(
            "Recorded provenance: %s %s %s", op.value, assessment_id, entry.entry_id,
        )
        return entry.entry_id

    def get_audit_trail(
        self,
        assessment_id: Optional[str] = None,
        operation: Optional[Union[str, OperationType]] = None,
        limit: int = 100,
    ) -> List[ProvenanceEntry]:
        """Get the audit trail, newest first, optionally filtered.

        Args:
            assessment_id: Optional filter by assessment.
            operation: Optional filter by operation type.
            limit: Maximum number of entries to return.
        """
        entries = list(self._entries)
        if assessment_id is not None:
            entries = [e for e in entries if e.assessment_id == assessment_id]
        if operation is not None:
            op = OperationType(operation) if isinstance(operation, str) else operation
            entries = [e for e in entries if e.operation == op]
        entries.reverse()
        return entries[:limit]

    def verify_chain(self) -> bool:
        """Recompute chain hashes from the anchor and compare.

        Returns:
            True if the retained chain is intact, False if tampered.
        """
        current_hash = self._anchor_hash
        for entry in self._entries:
            expected = self._link(current_hash, hash_payload(self._entry_payload(entry)))
            if entry.provenance_hash != expected:
                logger.warning("Chain verification failed at entry %s", entry.entry_id)
                return False
            current_hash = expected
        return True

    def export_json(self) -> str:
        """Export all provenance records as a JSON string."""
        records = [entry.model_dump(mode="json") for entry in self._entries]
        return json.dumps(records, indent=2, default=str)

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    @property
    def last_hash(self) -> str:
        return self._last_chain_hash

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _trim(self) -> None:
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            self._anchor_hash = self._entries[overflow - 1].provenance_hash
            del self._entries[:overflow]

    @staticmethod
    def _link(previous_hash: str, entry_hash: str) -> str:
        return hashlib.sha256(f"{previous_hash}:{entry_hash}".encode()).hexdigest()

    @staticmethod
    def _entry_payload(entry: ProvenanceEntry) -> Dict[str, Any]:
        return {
            "operation": entry.operation.value,
            "assessment": entry.assessment_id,
            "actor": entry.actor,
            "details": entry.details,
            "timestamp": entry.timestamp.isoformat(),
        }


__all__ = [
    "ProvenanceTracker",
    "hash_payload",
]
