"""
Cascade anonymizer: clears back-references to a user before it is deleted.

Dependents (orders, bills) are never deleted or created. Each one is updated
on its own through its service, so that service's hooks run. Dependents are independent of each other, so the
cascade is unordered and can be re-run after a partial failure.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from storefront.core.errors import CascadeError
from storefront.hooks.pipeline import HookContext, LifecycleHooks
from storefront.services.base import WriteResult

logger = logging.getLogger(__name__)


class BackReferenceRepository(Protocol):
    entity: str
    reference_field: str

    async def find_referencing(self, target_id: Any) -> list[dict[str, Any]]: ...

    async def clear_reference(self, document: dict[str, Any]) -> WriteResult: ...


@dataclass
class CascadeReport:
    """What one cascade run did."""
    target_id: Any
    cleared: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class CascadeAnonymizer(LifecycleHooks):
    """
    Before-delete hook of the user pipeline. Runs once every other before
    hook accepted the delete, so a rejected delete anonymizes nothing.
    """

    writes_elsewhere = True

    def __init__(self, dependents: Iterable[BackReferenceRepository]):
        self.dependents = list(dependents)

    async def before_delete(self, ctx: HookContext) -> None:
        report = await self.anonymize(ctx.document["_id"])
        if not report.ok:
            error = CascadeError(
                f"Partial anonymization for user {report.target_id}", report.errors
            )
            ctx.warnings.append(str(error))
            ctx.warnings.extend(error.errors)

    async def anonymize(self, target_id: Any) -> CascadeReport:
        """
        Clear every reference to `target_id` in the dependent collections.

        Raises:
            CascadeError: (fatal) if the dependents could not be looked up
        """
        pending = []
        for repo in self.dependents:
            try:
                docs = await repo.find_referencing(target_id)
            except Exception as e:
                raise CascadeError(
                    f"Cannot look up {repo.entity} documents referencing {target_id}: {e}",
                    fatal=True,
                ) from e
            pending.append((repo, docs))

        report = CascadeReport(target_id=target_id)
        for repo, docs in pending:
            cleared = 0
            for doc in docs:
                try:
                    result = await repo.clear_reference(doc)
                except Exception as e:
                    logger.warning(
                        "Could not clear %s on %s %s: %s",
                        repo.reference_field, repo.entity, doc.get("_id"), e,
                    )
                    report.errors.append(f"{repo.entity} {doc.get('_id')}: {e}")
                    continue
                if not result.matched:
                    # Deleted or reassigned since the lookup
                    logger.info(
                        "%s %s no longer references %s", repo.entity, doc.get("_id"), target_id,
                    )
                    continue
                cleared += 1
            report.cleared[repo.entity] = cleared

        logger.info("Anonymized references to %s: %s", target_id, report.cleared)
        return report
