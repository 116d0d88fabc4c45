"""
Lifecycle hook pipeline run around every document write.
"""
from storefront.hooks.pipeline import (
    HookContext,
    HookPipeline,
    LifecycleHooks,
    Operation,
    TimestampHooks,
)

__all__ = [
    "HookContext",
    "HookPipeline",
    "LifecycleHooks",
    "Operation",
    "TimestampHooks",
]
