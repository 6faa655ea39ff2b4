"""Auction site catalogue.

The default catalogue covers the main Italian judicial-auction portals. A JSON
file with the same shape (a list of SourceConfig objects) can replace it via
``ASTEWATCH_SITES_FILE``.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from ..models.listing import FetchMethod, SiteSelectors, SourceConfig
from .base import SiteConfigError

logger = logging.getLogger(__name__)

DEFAULT_SITES: tuple[SourceConfig, ...] = (
    SourceConfig(
        name="Asta Legale",
        url="https://www.astalegale.net/",
        method=FetchMethod.RENDERED,
        selectors=SiteSelectors(
            container=".immobile-card, .auction-item",
            locality=".location, .comune",
            price=".price, .prezzo",
            property_type=".type, .tipologia",
        ),
    ),
    SourceConfig(
        name="Asta Giudiziaria",
        url="https://www.astagiudiziaria.com/",
        method=FetchMethod.AUTO,
        selectors=SiteSelectors(
            container=".property-card",
            locality=".city",
            price=".amount",
        ),
    ),
    SourceConfig(
        name="PVP Giustizia",
        url="https://pvp.giustizia.it/pvp/",
        method=FetchMethod.RENDERED,
        search_url="https://pvp.giustizia.it/pvp/it/ricerca.page",
        requires_interaction=True,
    ),
    SourceConfig(
        name="Aste Online",
        url="https://www.asteonline.it",
        method=FetchMethod.AUTO,
    ),
    SourceConfig(
        name="Immobiliare Aste",
        url="https://aste.immobiliare.it",
        method=FetchMethod.RENDERED,
    ),
    SourceConfig(
        name="Fallimenti.it",
        url="https://www.fallimenti.it/",
        method=FetchMethod.AUTO,
    ),
    SourceConfig(
        name="Sole 24 Ore",
        url="https://astetribunali24.ilsole24ore.com/",
        method=FetchMethod.RENDERED,
    ),
)

_SITES_ADAPTER = TypeAdapter(list[SourceConfig])


def load_sites(path: Optional[Path] = None) -> list[SourceConfig]:
    """Load the site catalogue.

    Args:
        path: JSON file with a list of site configurations. The default
              catalogue is returned when None.

    Returns:
        Site configurations in declared order

    Raises:
        SiteConfigError: If the file is missing, not JSON, invalid, or
                         declares the same site name twice
    """
    if path is None:
        return list(DEFAULT_SITES)

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        sites = _SITES_ADAPTER.validate_python(raw)
    except (OSError, json.JSONDecodeError) as e:
        raise SiteConfigError(f"Cannot read site file {path}: {e}") from e
    except ValidationError as e:
        raise SiteConfigError(f"Invalid site file {path}: {e}") from e

    names = [site.name for site in sites]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise SiteConfigError(f"Duplicate site names in {path}: {', '.join(duplicates)}")

    logger.info(f"Loaded {len(sites)} sites from {path}")
    return sites
