"""Task and TaskSet data models produced by the analyst stage."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator


@dataclass(frozen=True)
class Architecture:
    layers: tuple[str, ...] = ()
    recommended_pattern: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Architecture:
        if not isinstance(data, dict):
            return cls()
        layers = data.get("layers") or []
        if isinstance(layers, str):
            layers = [layers]
        return cls(
            layers=tuple(str(layer) for layer in layers if layer),
            recommended_pattern=str(data.get("recommended_pattern") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"layers": list(self.layers), "recommended_pattern": self.recommended_pattern}


def _coerce_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Task:
    """One unit of work. Priority and story points never change once created."""

    number: int = 0
    name: str = "No name"
    dependency: str = ""
    description: str = "No description"
    architecture: Architecture = field(default_factory=Architecture)
    priority: int = 1
    story_points: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        priority = min(2, max(0, _coerce_int(data.get("priority"), 1)))
        story_points = max(0, _coerce_int(data.get("storyPoints", data.get("story_points")), 0))
        return cls(
            number=_coerce_int(data.get("number"), 0),
            name=str(data.get("name") or "No name"),
            dependency=str(data.get("dependency") or ""),
            description=str(data.get("description") or "No description"),
            architecture=Architecture.from_dict(data.get("architecture")),
            priority=priority,
            story_points=story_points,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "name": self.name,
            "dependency": self.dependency,
            "description": self.description,
            "architecture": self.architecture.to_dict(),
            "priority": self.priority,
            "storyPoints": self.story_points,
        }

    def with_context(self, extra: str) -> Task:
        """Return a copy whose description carries *extra* (e.g. error lines)."""
        if not extra:
            return self
        return dataclasses.replace(self, description=f"{self.description} {extra}")


def parse_tasks(data: Any) -> list[Task]:
    """Read tasks from ``{"tasks": [...]}`` or a bare list; ignore anything else."""
    if isinstance(data, dict):
        data = data.get("tasks")
    if not isinstance(data, list):
        return []
    return [Task.from_dict(item) for item in data if isinstance(item, dict)]


class TaskSet:
    """Ordered tasks; insertion order is execution order.

    Splitting appends the children and marks the parent so that it is kept
    for the record but no longer executed.
    """

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self._tasks: list[Task] = list(tasks or [])
        self._split: set[int] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks)

    def __getitem__(self, index: int) -> Task:
        return self._tasks[index]

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    def append(self, task: Task) -> None:
        self._tasks.append(task)

    def is_split(self, index: int) -> bool:
        return index in self._split

    def split(self, index: int, children: list[Task]) -> None:
        """Replace task *index* by *children* (appended at the end)."""
        if not children:
            return
        self._split.add(index)
        self._tasks.extend(children)

    def runnable(self) -> list[Task]:
        return [t for i, t in enumerate(self._tasks) if i not in self._split]

    def expand(
        self,
        splitter: Callable[[Task], list[Task]],
        *,
        threshold: int,
        max_depth: int,
    ) -> int:
        """Split every task above *threshold* story points. Returns tasks added.

        Children are visited too, so oversized children are split again
        until *max_depth* is reached.
        """
        depths: dict[int, int] = {}
        added = 0
        i = 0
        while i < len(self._tasks):
            task = self._tasks[i]
            depth = depths.get(i, 0)
            if task.story_points > threshold and depth < max_depth:
                children = splitter(task)
                if children:
                    start = len(self._tasks)
                    self.split(i, children)
                    for j in range(start, len(self._tasks)):
                        depths[j] = depth + 1
                    added += len(children)
            i += 1
        return added

    def to_dict(self) -> dict[str, Any]:
        return {"tasks": [t.to_dict() for t in self._tasks]}
