"""
Domain models — Pydantic types for esvu.

All models are re-exported here for convenient access:

    from esvu.core.models import EngineDescriptor, InstallationState
"""

from esvu.core.models.engine import EngineDescriptor, ExternalRequirement
from esvu.core.models.state import (
    LATEST,
    InstallationState,
    InstalledRecord,
    slot_key,
    split_slot_key,
)

__all__ = [
    # engine.py
    "EngineDescriptor",
    "ExternalRequirement",
    # state.py
    "InstallationState",
    "InstalledRecord",
    "LATEST",
    "slot_key",
    "split_slot_key",
]
