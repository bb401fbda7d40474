"""Reconciliation of feed batches into the catalog."""

from .categories import CategoryResolver
from .reconciler import BatchReconciler, HandleRegistry, plan_batch
from .slug import slugify
from .stats import StatsAggregator
from .tasks import distribute, generate_tasks

__all__ = [
    "BatchReconciler",
    "CategoryResolver",
    "HandleRegistry",
    "StatsAggregator",
    "distribute",
    "generate_tasks",
    "plan_batch",
    "slugify",
]
