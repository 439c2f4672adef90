"""
Which (task, width) outputs a source image requires.

Shared by the cache validity check and the job planner so both agree on what
"complete" means.
"""

from typing import List, Optional, Sequence, Tuple

from .source_image import SourceImage
from .tasks import Task


def find_inline_task(tasks: Sequence[Task]) -> Optional[Task]:
    for task in tasks:
        if task.is_inline:
            return task
    return None


def is_inline_source(source: SourceImage, tasks: Sequence[Task]) -> bool:
    """True if the source is at or below the inline task's size threshold."""
    task = find_inline_task(tasks)
    return task is not None and source.size <= task.options.inline_below


def inline_width(task: Task, source: SourceImage) -> int:
    """Smallest task width, never larger than the source."""
    if not task.sizes:
        return source.width
    return min(min(task.sizes), source.width)


def required_outputs(source: SourceImage, tasks: Sequence[Task]) -> List[Tuple[Task, int]]:
    """
    List the (task, width) pairs a source needs, in task order then width.

    Inline sources need exactly one inline output and nothing else. Other
    sources need every file-backed task width that does not exceed their
    intrinsic width, plus an inline placeholder when the inline task asks
    for one.
    """
    inline_task = find_inline_task(tasks)

    if is_inline_source(source, tasks):
        return [(inline_task, inline_width(inline_task, source))]

    required = []
    for task in tasks:
        if task.is_inline:
            if task is inline_task and task.options.placeholder:
                required.append((task, inline_width(task, source)))
            continue
        for width in task.widths:
            if width <= source.width:
                required.append((task, width))
    return required
