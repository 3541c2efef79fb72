"""Base agent interface shared by the bundlelens analysis agents."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TaskStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TaskInput:
    """Input for an agent task."""

    task_type: str

    def validate(self) -> list[str]:
        """Return parameter errors; an empty list means the task is usable."""
        return []


@dataclass
class TaskOutput:
    """Output from an agent task."""

    status: TaskStatus
    result: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is TaskStatus.COMPLETED


def failed(*errors: str) -> TaskOutput:
    """Build a FAILED output carrying *errors*."""
    return TaskOutput(status=TaskStatus.FAILED, errors=list(errors))


class BaseAgent(ABC):
    """Abstract base class for all bundlelens agents."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name identifying this agent (matches the operation name)."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this agent does."""

    @abstractmethod
    async def run(self, task: TaskInput) -> TaskOutput:
        """Execute the agent's task asynchronously.

        Args:
            task: The input task to process.

        Returns:
            The result of the task execution.
        """
