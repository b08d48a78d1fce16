"""Source adapter strategies."""
from .base import FULLTEXT, IDENTIFIER, LOCATION, SourceAdapter, SourceResult
from .directory_scraper import DirectoryScraper
from .mock_source import MockSource
from .registry_client import RegistryClient, is_identifier

__all__ = [
    'DirectoryScraper', 'FULLTEXT', 'IDENTIFIER', 'LOCATION', 'MockSource',
    'RegistryClient', 'SourceAdapter', 'SourceResult', 'is_identifier',
]
