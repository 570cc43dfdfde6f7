"""Site adapter registry.

    from scrapers.sites import get_site_adapter
    adapter = get_site_adapter("multi-komputer")
"""

from __future__ import annotations

from typing import Dict, Optional, Type

from config.settings import PolitenessConfig
from .base_site import ExtractedRecord, SiteAdapter
from .multi_komputer import MultiKomputerAdapter
from .oferia import OferiaAdapter
from .useme import UsemeAdapter

SITE_ADAPTERS: Dict[str, Type[SiteAdapter]] = {
    MultiKomputerAdapter.name: MultiKomputerAdapter,
    OferiaAdapter.name: OferiaAdapter,
    UsemeAdapter.name: UsemeAdapter,
}


def get_site_adapter(
    name: str,
    base_url: Optional[str] = None,
    politeness: Optional[PolitenessConfig] = None,
) -> SiteAdapter:
    """Instantiate the adapter registered as ``name``.

    Raises:
        KeyError: ``name`` is not a registered site.
    """
    try:
        adapter_cls = SITE_ADAPTERS[name]
    except KeyError:
        raise KeyError(
            f"Unknown site {name!r}; expected one of {sorted(SITE_ADAPTERS)}"
        ) from None
    return adapter_cls(base_url=base_url, politeness=politeness)


__all__ = [
    "SiteAdapter",
    "ExtractedRecord",
    "MultiKomputerAdapter",
    "OferiaAdapter",
    "UsemeAdapter",
    "SITE_ADAPTERS",
    "get_site_adapter",
]
