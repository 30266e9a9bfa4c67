"""Catalog track providers."""

from metadata.providers.anilist import AniListCatalogProvider
from metadata.providers.catalog_search import CatalogSearchProvider
from metadata.providers.deezer import DeezerCatalogProvider
from metadata.providers.spotify import SpotifyCatalogProvider

__all__ = [
    "AniListCatalogProvider",
    "CatalogSearchProvider",
    "DeezerCatalogProvider",
    "SpotifyCatalogProvider",
]
