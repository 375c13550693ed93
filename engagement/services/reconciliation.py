"""
Counter reconciliation and view fact retention

Counters are kept in step with the fact tables transactionally; the
functions here are the periodic safety net, not a substitute for that.

- ``like_count`` must equal the number of ``likes`` rows, so it is recomputed.
- ``view_count`` cannot be recomputed because view facts are refreshed in
  place after the cooldown. The fact count is only a lower bound, so the
  counter is raised to it when it has fallen behind.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from engagement.models.content import Content
from engagement.models.like import LikeFact
from engagement.models.view import ViewFact
from engagement.utils.clock import utcnow
from engagement.utils.metrics import COUNTER_REPAIRS_TOTAL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationReport:
    like_counts_repaired: int
    view_counts_repaired: int


async def reconcile_counters(db: AsyncSession) -> ReconciliationReport:
    """Repair content counters that drifted from their fact tables."""
    like_facts = (
        select(func.count(LikeFact.id)).where(LikeFact.content_id == Content.id).correlate(Content).scalar_subquery()
    )
    like_result = await db.execute(
        update(Content)
        .where(Content.like_count != like_facts)
        .values(like_count=like_facts)
        .execution_options(synchronize_session=False)
    )

    view_facts = (
        select(func.count(ViewFact.id)).where(ViewFact.content_id == Content.id).correlate(Content).scalar_subquery()
    )
    view_result = await db.execute(
        update(Content)
        .where(Content.view_count < view_facts)
        .values(view_count=view_facts)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    report = ReconciliationReport(
        like_counts_repaired=like_result.rowcount or 0,
        view_counts_repaired=view_result.rowcount or 0,
    )
    if report.like_counts_repaired or report.view_counts_repaired:
        COUNTER_REPAIRS_TOTAL.labels(counter="like_count").inc(report.like_counts_repaired)
        COUNTER_REPAIRS_TOTAL.labels(counter="view_count").inc(report.view_counts_repaired)
        logger.warning(
            f"Counter drift repaired: like_count on {report.like_counts_repaired} items, "
            f"view_count on {report.view_counts_repaired} items"
        )
    return report


async def prune_view_facts(db: AsyncSession, retention_days: int) -> int:
    """
    Delete view facts older than ``retention_days``.

    Counters are left untouched; a pruned viewer simply counts as new on
    their next visit.
    """
    if retention_days <= 0:
        raise ValueError("retention_days must be positive")

    cutoff = utcnow() - timedelta(days=retention_days)
    result = await db.execute(
        delete(ViewFact).where(ViewFact.viewed_at < cutoff).execution_options(synchronize_session=False)
    )
    await db.commit()

    deleted = result.rowcount or 0
    logger.info(f"Pruned {deleted} view facts older than {retention_days} days")
    return deleted
