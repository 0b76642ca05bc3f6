"""
Module: processor
Description: Trigger processing.

- service: Sweep orchestration (poll, persist, deliver, retry, clean up)
- health: Pure health transition behind the circuit breaker
"""

from trigger_relay.processor.health import PollOutcome, apply_outcome
from trigger_relay.processor.service import (
    SweepSummary,
    TriggerProcessor,
    TriggerResult,
    create_processor,
)

__all__ = [
    "PollOutcome",
    "SweepSummary",
    "TriggerProcessor",
    "TriggerResult",
    "apply_outcome",
    "create_processor",
]
