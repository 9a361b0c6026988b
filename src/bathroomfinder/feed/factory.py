from __future__ import annotations

from bathroomfinder.config.settings import Settings
from bathroomfinder.feed.base import Feed
from bathroomfinder.feed.client import FirebaseFeed
from bathroomfinder.feed.memory import MemoryFeed, load_seed


def build_feed(settings: Settings) -> Feed:
    """Construct the configured feed backend."""
    if settings.feed.backend == "firebase":
        return FirebaseFeed(settings)
    root = load_seed(settings.feed.seed_path) if settings.feed.seed_path else None
    return MemoryFeed(root)
