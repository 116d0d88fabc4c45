"""
Per-entity pipeline of before/after persist callbacks.

Before hooks may mutate the in-flight document or patch and may abort the
write by returning error messages. After hooks observe the committed
result; their failures are logged and reported, never raised.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional

from storefront.core.errors import ValidationError

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Kind of write going through the pipeline."""
    CREATE = "create"
    REPLACE = "replace"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class HookContext:
    """
    State shared by all hooks of one write.

    - CREATE: `document` is the new document.
    - REPLACE: `document` is the full replacement, `previous` the stored one.
    - UPDATE: `filter` and `patch` describe the partial update; after the
      commit `document` holds the updated document.
    - DELETE: `document` is the snapshot taken before deletion.
    """
    entity: str
    operation: Operation
    document: Optional[dict[str, Any]] = None
    previous: Optional[dict[str, Any]] = None
    filter: Optional[dict[str, Any]] = None
    patch: Optional[dict[str, Any]] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def set_fields(self) -> dict[str, Any]:
        """
        Fields written by this update, whichever shape it has.

        For a replace this is the whole document; for a patch it is the
        `$set` part.
        """
        if self.operation == Operation.REPLACE:
            return self.document or {}
        if self.patch is None:
            return {}
        return self.patch.get("$set") or {}

    def set(self, key: str, value: Any) -> None:
        """Write a field into the replacement document or the `$set` patch."""
        if self.operation == Operation.REPLACE:
            self.document[key] = value
        else:
            self.patch.setdefault("$set", {})[key] = value


class LifecycleHooks:
    """
    Base class for hooks. Override only the phases you need.

    Before methods return a list of error strings (or None).

    Hooks whose before phase writes to other collections set
    `writes_elsewhere`; they run after every other before hook accepted the
    write, whatever the registration order.
    """

    writes_elsewhere = False

    async def before_create(self, ctx: HookContext) -> Optional[list[str]]:
        return None

    async def after_create(self, ctx: HookContext) -> None:
        return None

    async def before_update(self, ctx: HookContext) -> Optional[list[str]]:
        return None

    async def after_update(self, ctx: HookContext) -> None:
        return None

    async def before_delete(self, ctx: HookContext) -> Optional[list[str]]:
        return None

    async def after_delete(self, ctx: HookContext) -> None:
        return None

    async def on_validated(self, ctx: HookContext) -> None:
        """Runs once every before hook of a create/update accepted the write."""
        return None


def _phase(operation: Operation) -> str:
    if operation == Operation.CREATE:
        return "create"
    if operation == Operation.DELETE:
        return "delete"
    return "update"


class HookPipeline:
    """Ordered hooks for one entity type, registered at startup."""

    def __init__(self, entity: str, hooks: Iterable[LifecycleHooks] = ()):
        self.entity = entity
        self._hooks: list[LifecycleHooks] = list(hooks)

    def register(self, hook: LifecycleHooks) -> "HookPipeline":
        self._hooks.append(hook)
        return self

    @property
    def hooks(self) -> list[LifecycleHooks]:
        return list(self._hooks)

    def context(self, operation: Operation, **kwargs: Any) -> HookContext:
        return HookContext(entity=self.entity, operation=operation, **kwargs)

    def _before_order(self) -> list[LifecycleHooks]:
        checks = [h for h in self._hooks if not h.writes_elsewhere]
        return checks + [h for h in self._hooks if h.writes_elsewhere]

    async def run_before(self, ctx: HookContext) -> None:
        """
        Run every before hook in registration order, `writes_elsewhere`
        hooks last and only while no error was returned.

        Raises:
            ValidationError: If any hook returned errors
        """
        name = f"before_{_phase(ctx.operation)}"
        errors: list[str] = []
        for hook in self._before_order():
            if errors and hook.writes_elsewhere:
                break
            result = await getattr(hook, name)(ctx)
            if result:
                errors.extend(result)

        if errors:
            logger.info(
                "%s %s rejected: %s", self.entity, ctx.operation.value, "; ".join(errors)
            )
            raise ValidationError(errors)

        if ctx.operation != Operation.DELETE:
            for hook in self._hooks:
                await hook.on_validated(ctx)

    async def run_after(self, ctx: HookContext) -> list[str]:
        """
        Run every after hook, even if an earlier one failed.

        Returns:
            Warnings collected during the whole write
        """
        name = f"after_{_phase(ctx.operation)}"
        for hook in self._hooks:
            try:
                await getattr(hook, name)(ctx)
            except Exception as e:
                logger.exception(
                    "%s hook %s.%s failed after commit",
                    self.entity, type(hook).__name__, name,
                )
                ctx.warnings.append(f"{type(hook).__name__}: {e}")
        return ctx.warnings


class TimestampHooks(LifecycleHooks):
    """Stamp created_at / updated_at on every write."""

    async def before_create(self, ctx: HookContext) -> None:
        now = datetime.now(timezone.utc)
        ctx.document.setdefault("created_at", now)
        ctx.document["updated_at"] = now

    async def before_update(self, ctx: HookContext) -> None:
        ctx.set("updated_at", datetime.now(timezone.utc))
