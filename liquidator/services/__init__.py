"""Service modules"""
from .liquidator import Liquidator, RoundState

__all__ = ["Liquidator", "RoundState"]
