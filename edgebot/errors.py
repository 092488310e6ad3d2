"""Exceptions raised inside the scanner and caught at its boundaries."""


class EdgeBotError(Exception):
    """Base class for scanner errors."""


class MarketFetchError(EdgeBotError):
    """The market data source could not be reached or returned garbage."""


class StoreUnavailableError(EdgeBotError):
    """The alert store could not serve a read query."""
