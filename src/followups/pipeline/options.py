from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from typing_extensions import Literal

from ..core.errors import CollaboratorError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

OnItemError = Literal["abort", "skip"]


@dataclass(frozen=True)
class PipelineOptions:
    """
    Per-item execution policy for the scoring and drafting stages.

    on_item_error:
        "abort" - the first collaborator failure aborts the stage (and run)
        "skip"  - the failing deal is logged and left out of the stage output
    concurrency:
        maximum number of deals with collaborator calls in flight
    """
    on_item_error: OnItemError = "abort"
    concurrency: int = 1

    def __post_init__(self):
        if self.on_item_error not in ("abort", "skip"):
            raise ValueError(f"on_item_error must be 'abort' or 'skip', got {self.on_item_error!r}")
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")


async def run_per_item(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[R]],
    options: PipelineOptions,
    *,
    stage: str,
    key: Callable[[T], str],
) -> Tuple[List[Tuple[T, R]], List[str]]:
    """
    Apply ``fn`` to every item, preserving input order in the result.

    Returns (results, skipped_keys). In abort mode the first
    CollaboratorError propagates; non-collaborator errors always propagate.
    """
    semaphore = asyncio.Semaphore(options.concurrency)

    async def one(item: T) -> Optional[R]:
        async with semaphore:
            try:
                return await fn(item)
            except CollaboratorError as e:
                if options.on_item_error == "abort":
                    raise
                logger.warning("[%s] Skipping %s: %s", stage, key(item), e.message)
                return None

    if options.concurrency == 1:
        outcomes = [await one(item) for item in items]
    else:
        outcomes = await asyncio.gather(*(one(item) for item in items))

    results: List[Tuple[T, R]] = []
    skipped: List[str] = []
    for item, outcome in zip(items, outcomes):
        if outcome is None:
            skipped.append(key(item))
        else:
            results.append((item, outcome))
    return results, skipped
