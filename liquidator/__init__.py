"""Liquidation-decision engine for a collateralized lending protocol."""

__version__ = "0.1.0"
