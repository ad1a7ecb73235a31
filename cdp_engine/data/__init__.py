"""Price feeds and collaborator implementations for the engine."""

from cdp_engine.data.feed_factory import create_price_feed

__all__ = ["create_price_feed"]
