"""Per-instance exception layering for recurring task occurrences."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.config_manager import EngineConfig
from ..models import (
    CompletionRecord,
    InstanceKey,
    SkippedInstance,
    TaskDefinition,
    TaskStatus,
    TimeOverride,
)
from .effective_time import resolve_effective_times, task_defaults, task_override

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExceptionTables:
    """Skip, completion and time-override records keyed by InstanceKey."""

    skipped: frozenset[InstanceKey] = field(default_factory=frozenset)
    completed: frozenset[InstanceKey] = field(default_factory=frozenset)
    overrides: dict[InstanceKey, TimeOverride] = field(default_factory=dict)

    @classmethod
    def from_records(
        cls,
        skipped: Iterable[SkippedInstance] = (),
        completions: Iterable[CompletionRecord] = (),
        overrides: Iterable[TimeOverride] = (),
    ) -> "ExceptionTables":
        override_map: dict[InstanceKey, TimeOverride] = {}
        for record in overrides:
            if record.key in override_map:
                logger.warning(
                    "Duplicate time override for %s on %s; keeping the last one",
                    record.task_id,
                    record.instance_date,
                )
            override_map[record.key] = record
        return cls(
            skipped=frozenset(record.key for record in skipped),
            completed=frozenset(record.key for record in completions),
            overrides=override_map,
        )

    def is_skipped(self, key: InstanceKey) -> bool:
        return key in self.skipped

    def is_completed(self, key: InstanceKey) -> bool:
        return key in self.completed

    def override_for(self, key: InstanceKey) -> Optional[TimeOverride]:
        return self.overrides.get(key)


@dataclass(frozen=True)
class ResolvedInstance:
    """Effective state of one surviving occurrence."""

    key: InstanceKey
    start: datetime
    end: datetime
    all_day: bool
    status: TaskStatus
    has_time_override: bool

    @property
    def occurrence_date(self) -> date:
        return self.key.occurrence_date


def resolve_instances(
    definition: TaskDefinition,
    dates: Iterable[date],
    tables: ExceptionTables,
    config: Optional[EngineConfig] = None,
) -> list[ResolvedInstance]:
    """Apply exception records to a definition's raw occurrences.

    A skipped instance is dropped before completion or override are looked
    at, so a skip always wins over a completion for the same key. Every
    lookup is by the exact InstanceKey; nothing carries over between dates.
    """
    defaults = task_defaults(definition, config)
    resolved: list[ResolvedInstance] = []

    for occurrence in dates:
        key = InstanceKey(definition.id, occurrence)
        if tables.is_skipped(key):
            logger.debug("Skipping instance %s on %s", definition.id, occurrence)
            continue

        override = tables.override_for(key)
        times = resolve_effective_times(defaults, task_override(definition, override), occurrence)
        status = TaskStatus.COMPLETED if tables.is_completed(key) else TaskStatus.PENDING

        resolved.append(
            ResolvedInstance(
                key=key,
                start=times.start,
                end=times.end,
                all_day=times.all_day,
                status=status,
                has_time_override=override is not None,
            )
        )

    return resolved
