"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from discord_music_engine.application.interfaces.catalog_provider import CatalogProvider
from discord_music_engine.application.interfaces.media_store import MediaStore
from discord_music_engine.application.interfaces.stream_extractor import StreamExtractor
from discord_music_engine.application.interfaces.title_extractor import TitleExtractor
from discord_music_engine.application.interfaces.voice_adapter import VoiceAdapter

__all__ = [
    "CatalogProvider",
    "MediaStore",
    "StreamExtractor",
    "TitleExtractor",
    "VoiceAdapter",
]
