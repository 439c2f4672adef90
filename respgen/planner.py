"""
JobPlanner - Decides which outputs must be (re)generated.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .cache_store import CacheStore
from .output_paths import OutputPathResolver
from .output_record import OutputDescriptor
from .requirements import required_outputs
from .source_image import SourceImage
from .tasks import Task

SATISFIED = 'satisfied'
STALE = 'stale'
NEEDED = 'needed'


@dataclass
class Job:
    """
    One output to generate.

    Attributes:
        source: Source image
        task: Output task
        descriptor: Resolved output identity
        reason: 'stale' (recorded but missing/invalid) or 'needed' (never recorded)
    """
    source: SourceImage
    task: Task
    descriptor: OutputDescriptor
    reason: str

    @property
    def width(self) -> int:
        return self.descriptor.width

    @property
    def height(self) -> Optional[int]:
        return self.descriptor.height

    def describe(self) -> str:
        target = self.descriptor.srcset or f"{self.descriptor.source_name} @{self.width} (inline)"
        return f"[{self.task.format.value}] {target}"


@dataclass
class Plan:
    """Planning outcome: the ordered job list plus classification counts."""
    jobs: List[Job] = field(default_factory=list)
    satisfied: int = 0
    stale: int = 0
    needed: int = 0
    sources: int = 0

    @property
    def total_outputs(self) -> int:
        return self.satisfied + self.stale + self.needed

    def jobs_by_task(self) -> Counter:
        return Counter(job.task.name for job in self.jobs)

    def __len__(self) -> int:
        return len(self.jobs)


class JobPlanner:
    """
    Cross-products tasks x widths x sources and keeps only missing work.

    Widths above a source's intrinsic width are never planned. Jobs are
    ordered by task declaration, then width ascending, then source order.
    """

    def __init__(
        self,
        store: CacheStore,
        resolver: Optional[OutputPathResolver] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.store = store
        self.config = store.config
        self.resolver = resolver or OutputPathResolver(self.config)
        self.logger = logger or logging.getLogger(__name__)

    def classify(self, source: SourceImage, descriptor: OutputDescriptor) -> str:
        """
        Classify one descriptor as satisfied, stale or needed.

        An output recorded under the active checksum is satisfied while its
        file exists (or its inline payload is a data URI) and stale otherwise.
        An output recorded only under another checksum is stale. An output
        never recorded is needed.
        """
        key = self.resolver.cache_key(source)
        record = self.store.records.get(key)
        if record is None:
            return NEEDED

        result = record.get(descriptor.task, descriptor.width)
        if result is None:
            return NEEDED

        if record.checksum != self.store.checksum or record.source.hash != source.hash:
            return STALE
        if descriptor.is_inline != result.is_inline:
            return STALE
        if not result.is_inline and result.output_path != descriptor.output_path:
            return STALE
        return STALE if result.is_stale() else SATISFIED

    def plan(self, sources: Sequence[SourceImage]) -> Plan:
        """
        Build the job list for the given sources.

        Args:
            sources: Source images in discovery order

        Returns:
            Plan with ordered jobs and counts
        """
        plan = Plan(sources=len(sources))
        task_order = {task.name: i for i, task in enumerate(self.config.tasks)}
        planned = []

        for source_index, source in enumerate(sources):
            for task, width in required_outputs(source, self.config.tasks):
                descriptor = self.resolver.resolve(source, task, width)
                status = self.classify(source, descriptor)

                if status == SATISFIED:
                    plan.satisfied += 1
                    continue

                if status == STALE:
                    plan.stale += 1
                    self.logger.debug(
                        f"Stale output for {source.source_name}: {descriptor.output_path}",
                        extra={'event': 'stale'},
                    )
                else:
                    plan.needed += 1

                sort_key = (task_order[task.name], width, source_index)
                planned.append((sort_key, Job(source, task, descriptor, status)))

        planned.sort(key=lambda item: item[0])
        plan.jobs = [job for _, job in planned]

        self.logger.info(
            f"{len(plan.jobs)} resize tasks queued for {plan.sources} files "
            f"({plan.satisfied} cached, {plan.stale} stale, {plan.needed} new)",
            extra={'event': 'planned'},
        )
        return plan
