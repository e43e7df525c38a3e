"""
EngineDescriptor — the static capability record of one engine.

Declarative: identity, human name, supported platforms, and advisory
external requirements.  Built once when the engine module is imported
and never mutated.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ExternalRequirement(BaseModel):
    """Something the user may need to install by hand.  Advisory only."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str


class EngineDescriptor(BaseModel):
    """Identity and platform capability of an engine."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    # None = every platform (e.g. engines that run on a separate runtime).
    supported_platforms: frozenset[str] | None = None
    external_requirements: tuple[ExternalRequirement, ...] = Field(default_factory=tuple)

    def supports(self, platform: str) -> bool:
        if self.supported_platforms is None:
            return True
        return platform in self.supported_platforms
