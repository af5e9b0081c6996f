from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Sequence, TypeVar

import httpx

from salesboard.core.errors import ShapeMismatch


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class DataSource(Generic[T]):
    """One step of a fallback chain: a name for logs and a zero-arg fetch."""

    name: str
    fetch: Callable[[], Awaitable[List[T]]]


async def first_non_empty(sources: Sequence[DataSource[T]], label: str = "records") -> List[T]:
    """Await each source in order and return the first non-empty result.

    Transport errors, non-2xx responses and malformed payloads count as an
    empty result. Sources after the first hit are never called.
    """
    for source in sources:
        try:
            result = await source.fetch()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Source %s for %s returned %s", source.name, label, exc.response.status_code
            )
            continue
        except (httpx.HTTPError, ShapeMismatch, ValueError) as exc:
            logger.warning("Source %s for %s failed: %s", source.name, label, exc)
            continue
        if result:
            logger.info("Using %s for %s (%d items)", source.name, label, len(result))
            return result
        logger.debug("Source %s for %s returned nothing", source.name, label)
    logger.info("No source produced %s", label)
    return []
