"""Catalogue factory.

Provides get_catalogue() / set_catalogue() to swap implementations:
- InMemoryCatalogue for development and testing
- A catalogue-service client in production
"""

from commerce.catalogue.fake_adapter import InMemoryCatalogue
from commerce.catalogue.port import Catalogue, ProductSnapshot

_current_catalogue: Catalogue | None = None


def get_catalogue() -> Catalogue:
    """Return the current catalogue. Defaults to InMemoryCatalogue."""
    global _current_catalogue
    if _current_catalogue is None:
        _current_catalogue = InMemoryCatalogue()
    return _current_catalogue


def set_catalogue(catalogue: Catalogue) -> None:
    """Override the active catalogue (useful for tests)."""
    global _current_catalogue
    _current_catalogue = catalogue


def reset_catalogue() -> None:
    """Reset to default catalogue."""
    global _current_catalogue
    _current_catalogue = None


__all__ = ["Catalogue", "InMemoryCatalogue", "ProductSnapshot", "get_catalogue", "reset_catalogue", "set_catalogue"]
