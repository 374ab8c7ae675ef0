"""Base types shared across generation agents."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class AgentResponse:
    """Unified response from any agent."""

    content: str  # Human-readable summary or error text
    agent: str  # Which agent handled it
    confidence: float  # 0 means the agent failed
    metadata: dict = field(default_factory=dict)  # Agent-specific data

    @property
    def ok(self) -> bool:
        return self.confidence > 0
