"""
sealrelay: authenticated decryption and record relay.

Fetches an AES-256-GCM envelope, decrypts it, validates the user records it
carries and forwards them to a downstream webhook sink.
"""

__version__ = "0.1.0"

from sealrelay.core.exceptions import SealRelayError
from sealrelay.core.config import Settings
from sealrelay.core.models import FlowFailure, FlowStage, FlowState, FlowSuccess, UserRecord
from sealrelay.pipeline.orchestrator import FlowOrchestrator

__all__ = [
    "SealRelayError",
    "Settings",
    "FlowOrchestrator",
    "FlowSuccess",
    "FlowFailure",
    "FlowStage",
    "FlowState",
    "UserRecord",
]
