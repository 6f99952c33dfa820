"""Per-record state machine and batch orchestration."""

from .orchestrator import Orchestrator
from .record_processor import RecordProcessor

__all__ = ["Orchestrator", "RecordProcessor"]
