"""
Strategy Registry

Maps every listing-system tag to the strategy class that serves it.
Systems with a public read API get their own strategy; everything else is
served by the generic HTML capture.

Usage:
    from strategies.registry import STRATEGY_REGISTRY, get_strategy
    from ats.enums import ListingSystem

    # Get strategy class
    StrategyClass = STRATEGY_REGISTRY[ListingSystem.GREENHOUSE]

    # Or use helper
    strategy = get_strategy(ListingSystem.GREENHOUSE, client=http_client)
"""

from typing import Dict, Optional, Type

import httpx

from ats.enums import ListingSystem
from strategies.base_strategy import BaseStrategy
from strategies.ashby import AshbyStrategy
from strategies.greenhouse import GreenhouseStrategy
from strategies.html_capture import HtmlCaptureStrategy
from strategies.lever import LeverStrategy
from strategies.smartrecruiters import SmartRecruitersStrategy


# Listing system to Strategy mapping
STRATEGY_REGISTRY: Dict[ListingSystem, Type[BaseStrategy]] = {
    ListingSystem.GREENHOUSE: GreenhouseStrategy,
    ListingSystem.LEVER: LeverStrategy,
    ListingSystem.ASHBY: AshbyStrategy,
    ListingSystem.SMARTRECRUITERS: SmartRecruitersStrategy,
    ListingSystem.WORKDAY: HtmlCaptureStrategy,
    ListingSystem.BAMBOOHR: HtmlCaptureStrategy,
    ListingSystem.CUSTOM: HtmlCaptureStrategy,
    ListingSystem.UNKNOWN: HtmlCaptureStrategy,
}

# Strategy used when the preferred one yields nothing
FALLBACK_STRATEGY: Type[BaseStrategy] = HtmlCaptureStrategy


def get_strategy(
    listing_system: ListingSystem | str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 15.0,
) -> BaseStrategy:
    """
    Get an initialized strategy for a listing system

    Args:
        listing_system: ListingSystem enum or string tag (e.g. 'greenhouse')
        client: Shared async HTTP client
        timeout: Per-request timeout in seconds

    Returns:
        Initialized strategy instance

    Raises:
        ValueError: If the tag is not a known listing system
    """
    if isinstance(listing_system, str) and not isinstance(listing_system, ListingSystem):
        try:
            listing_system = ListingSystem(listing_system.lower())
        except ValueError:
            available = ', '.join([s.value for s in ListingSystem])
            raise ValueError(
                f"Listing system '{listing_system}' not found in registry. "
                f"Available: {available}"
            )

    return STRATEGY_REGISTRY[listing_system](client=client, timeout=timeout)


def get_fallback_strategy(
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 15.0,
) -> BaseStrategy:
    return FALLBACK_STRATEGY(client=client, timeout=timeout)


def list_listing_systems() -> list[str]:
    """Tags with a dedicated (non-fallback) strategy."""
    return [s.value for s, cls in STRATEGY_REGISTRY.items() if cls is not FALLBACK_STRATEGY]
