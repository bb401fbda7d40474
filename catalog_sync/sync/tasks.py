"""Batch task generation and round-robin distribution across workers."""

from typing import List

from catalog_sync.models.data_models import BatchTask


def generate_tasks(total: int, batch_size: int) -> List[BatchTask]:
    """
    Partition ``[0, total)`` into ``ceil(total / batch_size)`` contiguous tasks.

    The last task is shorter when ``batch_size`` does not divide ``total``.

    Raises:
        ValueError: If ``batch_size`` is not positive or ``total`` is negative
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got: {batch_size}")
    if total < 0:
        raise ValueError(f"total must not be negative, got: {total}")

    return [
        BatchTask(offset=offset, size=min(batch_size, total - offset))
        for offset in range(0, total, batch_size)
    ]


def distribute(tasks: List[BatchTask], worker_count: int) -> List[List[BatchTask]]:
    """
    Assign task ``i`` to worker ``i % worker_count``.

    Always returns ``worker_count`` lists; each holds ``floor(T/W)`` or
    ``ceil(T/W)`` tasks, in their original order.

    Example: 10 tasks, 3 workers -> [[0, 3, 6, 9], [1, 4, 7], [2, 5, 8]]
    """
    if worker_count <= 0:
        raise ValueError(f"worker_count must be positive, got: {worker_count}")

    groups: List[List[BatchTask]] = [[] for _ in range(worker_count)]
    for index, task in enumerate(tasks):
        groups[index % worker_count].append(task)
    return groups
