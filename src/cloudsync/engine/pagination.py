"""Drives a multi-page listing into a folder's children."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from cloudsync.models import CloudFolder, CloudItem, ProviderResult

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One parsed listing page."""

    items: list[CloudItem] = field(default_factory=list)
    next_token: Optional[str] = None


PageFetcher = Callable[[Optional[str]], ProviderResult[Page]]


def paginate_into(
    folder: CloudFolder,
    fetch_page: PageFetcher,
) -> ProviderResult[list[CloudItem]]:
    """
    Fetch pages until no continuation token is returned, appending every
    page's items after the folder's existing children.

    Pages are requested strictly one after another. If a page fails, items
    from earlier pages stay linked and the failure is returned.

    Returns:
        ProviderResult whose value is the list of newly appended items.
    """
    appended: list[CloudItem] = []
    token: Optional[str] = None
    page_count = 0

    while True:
        result = fetch_page(token)
        if not result.ok:
            logger.warning(
                "Listing %s stopped after %d page(s): %s",
                folder.id,
                page_count,
                result.error,
            )
            return ProviderResult.failure(result.error)  # type: ignore[arg-type]

        page = result.value if result.value is not None else Page()
        appended.extend(folder.extend_children(page.items))
        page_count += 1

        token = page.next_token
        if not token:
            break

    logger.debug(
        "Listed %s: %d page(s), %d new item(s)", folder.id, page_count, len(appended)
    )
    return ProviderResult.success(appended)
