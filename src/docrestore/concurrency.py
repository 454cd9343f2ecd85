from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextvars import copy_context
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(slots=True)
class TaskOutcome(Generic[T, R]):
    """Results and failures of a parallel pass, both in input order."""

    results: list[tuple[T, R]] = field(default_factory=list)
    failures: list[tuple[T, Exception]] = field(default_factory=list)

    @property
    def errors(self) -> list[Exception]:
        return [error for _, error in self.failures]


def run_all(
    items: Iterable[T],
    task: Callable[[T], R],
    *,
    max_workers: int,
) -> TaskOutcome[T, R]:
    """Run *task* for every item; a failing item never cancels its siblings."""
    ordered: Sequence[T] = list(items)
    outcome: TaskOutcome[T, R] = TaskOutcome()
    if not ordered:
        return outcome

    results: dict[int, R] = {}
    failures: dict[int, Exception] = {}
    if max_workers <= 1 or len(ordered) == 1:
        for index, item in enumerate(ordered):
            try:
                results[index] = task(item)
            except Exception as exc:
                failures[index] = exc
    else:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(ordered))) as executor:
            future_to_index = {
                executor.submit(copy_context().run, task, item): index
                for index, item in enumerate(ordered)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as exc:
                    failures[index] = exc

    outcome.results = [(ordered[index], results[index]) for index in sorted(results)]
    outcome.failures = [(ordered[index], failures[index]) for index in sorted(failures)]
    return outcome
