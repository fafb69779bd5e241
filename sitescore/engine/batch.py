"""Batch scoring with per-item failure isolation."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sitescore.engine.composite import score_site
from sitescore.engine.inputs import (
    REQUIRED_FIELDS,
    InvalidSiteInput,
    parse_site_input,
    require_fields,
)
from sitescore.models.site import ScoreResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchItem:
    index: int
    record: Mapping[str, Any]
    result: ScoreResult | None = None
    error: str | None = None
    error_field: str | None = None

    @property
    def success(self) -> bool:
        return self.result is not None

    def as_dict(self) -> dict:
        """The original record merged with its score, or with its error."""
        merged = dict(self.record)
        if self.result is not None:
            merged.update(self.result.as_dict())
            merged["success"] = True
        else:
            merged["success"] = False
            merged["error"] = self.error
            merged["error_field"] = self.error_field
        return merged


@dataclass(frozen=True)
class BatchResult:
    items: list[BatchItem]

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded


def score_record(
    index: int, record: Mapping[str, Any], required: Sequence[str] = REQUIRED_FIELDS
) -> BatchItem:
    if not isinstance(record, Mapping):
        return BatchItem(
            index=index,
            record={"value": record},
            error=f"Site record must be an object, got {type(record).__name__}",
        )
    try:
        require_fields(record, required)
        result = score_site(parse_site_input(record))
    except InvalidSiteInput as e:
        logger.debug("Batch item %d rejected: %s", index, e)
        return BatchItem(index=index, record=record, error=str(e), error_field=e.field)
    return BatchItem(index=index, record=record, result=result)


def score_batch(
    records: Iterable[Mapping[str, Any]], required: Sequence[str] = REQUIRED_FIELDS
) -> BatchResult:
    """Score every record independently, preserving input order."""
    items = [score_record(i, record, required) for i, record in enumerate(records)]
    result = BatchResult(items=items)
    logger.info("Scored batch: %d total, %d succeeded, %d failed", result.total, result.succeeded, result.failed)
    return result
