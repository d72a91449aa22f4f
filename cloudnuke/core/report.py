"""
Result aggregation for a nuke run.

Collects one terminal outcome per (resource type, scope, identifier) plus
general errors that belong to a type or scope rather than to one
identifier. Safe to record into from several threads.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from cloudnuke.core.exceptions import describe_client_error
from cloudnuke.core.resource import Candidate
from cloudnuke.core.strategies import NukeResult

# Module logger
logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OutcomeStatus(Enum):
    """Terminal state of one identifier."""

    DELETED = "deleted"
    FAILED = "failed"
    SKIPPED_PERMISSION = "skipped-permission"
    SKIPPED_FILTERED = "skipped-filtered"
    DRY_RUN = "dry-run"


@dataclass
class ResourceOutcome:
    """
    Outcome for a single identifier.

    Attributes:
        resource_type: Resource type name
        region: Scope the identifier was found in
        identifier: Resource identifier
        status: Terminal status
        name: Display name, if the resource has one
        error_message: Why it failed or was skipped
        timestamp: When the outcome was recorded
    """

    resource_type: str
    region: str
    identifier: str
    status: OutcomeStatus
    name: Optional[str] = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "resource_type": self.resource_type,
            "region": self.region,
            "identifier": self.identifier,
            "name": self.name,
            "status": self.status.value,
            "error_message": self.error_message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class GeneralError:
    """
    An error not tied to a single identifier.

    Attributes:
        resource_type: Resource type name
        region: Scope the error happened in
        description: What was being attempted
        error_message: The error text
    """

    resource_type: str
    region: str
    description: str
    error_message: str
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "resource_type": self.resource_type,
            "region": self.region,
            "description": self.description,
            "error_message": self.error_message,
            "timestamp": self.timestamp.isoformat(),
        }


OutcomeKey = Tuple[str, str, str]


class ReportCollector:
    """
    Thread-safe collector of run outcomes.

    Args:
        progress_callback: Optional callable invoked with every recorded
            :class:`ResourceOutcome`.
    """

    def __init__(
        self,
        progress_callback: Optional[Callable[[ResourceOutcome], None]] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._outcomes: Dict[OutcomeKey, ResourceOutcome] = {}
        self._found: Dict[Tuple[str, str], List[Candidate]] = {}
        self.general_errors: List[GeneralError] = []
        self.progress_callback = progress_callback
        self.start_time: datetime = _utcnow()
        self.end_time: Optional[datetime] = None

    # =========================================================================
    # Recording
    # =========================================================================

    def _record(self, outcome: ResourceOutcome) -> None:
        key = (outcome.resource_type, outcome.region, outcome.identifier)
        with self._lock:
            self._outcomes[key] = outcome
        if self.progress_callback:
            self.progress_callback(outcome)

    def record_found(self, resource_type: str, region: str, candidates: List[Candidate]) -> None:
        """Remember the candidates that survived filtering, for inventory output."""
        with self._lock:
            self._found.setdefault((resource_type, region), []).extend(candidates)

    def record_filtered(self, resource_type: str, region: str, candidate: Candidate) -> None:
        self._record(
            ResourceOutcome(
                resource_type=resource_type,
                region=region,
                identifier=candidate.identifier,
                name=candidate.value.name,
                status=OutcomeStatus.SKIPPED_FILTERED,
            )
        )

    def record_permission_skip(
        self,
        resource_type: str,
        region: str,
        candidate: Candidate,
        error: BaseException,
    ) -> None:
        self._record(
            ResourceOutcome(
                resource_type=resource_type,
                region=region,
                identifier=candidate.identifier,
                name=candidate.value.name,
                status=OutcomeStatus.SKIPPED_PERMISSION,
                error_message=describe_client_error(error),
            )
        )

    def record_dry_run(self, resource_type: str, region: str, candidate: Candidate) -> None:
        self._record(
            ResourceOutcome(
                resource_type=resource_type,
                region=region,
                identifier=candidate.identifier,
                name=candidate.value.name,
                status=OutcomeStatus.DRY_RUN,
            )
        )

    def record_result(
        self,
        resource_type: str,
        region: str,
        result: NukeResult,
        name: Optional[str] = None,
    ) -> None:
        self._record(
            ResourceOutcome(
                resource_type=resource_type,
                region=region,
                identifier=result.identifier,
                name=name,
                status=OutcomeStatus.DELETED if result.ok else OutcomeStatus.FAILED,
                error_message=result.error_message,
            )
        )

    def record_general_error(
        self,
        resource_type: str,
        region: str,
        description: str,
        error: BaseException,
    ) -> None:
        message = describe_client_error(error)
        logger.error(f"{description} ({resource_type} in {region}): {message}")
        with self._lock:
            self.general_errors.append(
                GeneralError(
                    resource_type=resource_type,
                    region=region,
                    description=description,
                    error_message=message,
                )
            )

    def complete(self) -> None:
        """Mark the run as complete."""
        self.end_time = _utcnow()

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def outcomes(self) -> List[ResourceOutcome]:
        with self._lock:
            return list(self._outcomes.values())

    @property
    def found(self) -> Dict[Tuple[str, str], List[Candidate]]:
        with self._lock:
            return {key: list(value) for key, value in self._found.items()}

    def outcomes_with_status(self, status: OutcomeStatus) -> List[ResourceOutcome]:
        return [o for o in self.outcomes if o.status == status]

    def counts(self) -> Dict[str, int]:
        """Number of identifiers per status."""
        totals = {status.value: 0 for status in OutcomeStatus}
        for outcome in self.outcomes:
            totals[outcome.status.value] += 1
        return totals

    @property
    def deleted(self) -> int:
        return self.counts()[OutcomeStatus.DELETED.value]

    @property
    def failed(self) -> int:
        return self.counts()[OutcomeStatus.FAILED.value]

    @property
    def has_failures(self) -> bool:
        """True if any identifier failed or any general error was recorded."""
        return self.failed > 0 or bool(self.general_errors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "summary": self.counts(),
            "outcomes": [o.to_dict() for o in self.outcomes],
            "general_errors": [e.to_dict() for e in self.general_errors],
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }
