"""
Zotion - Zotero to Notion sync engine
"""

__version__ = "1.0.0"
__author__ = "Zotion Team"

from .config import ConfigurationMissing, SyncSettings, ZoteroSettings
from .services.sync_engine import SyncEngine, build_engine

__all__ = [
    "ConfigurationMissing",
    "SyncSettings",
    "ZoteroSettings",
    "SyncEngine",
    "build_engine",
]
