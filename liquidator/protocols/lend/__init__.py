"""Lend protocol adapter."""
from .adapter import LendAdapter

__all__ = ["LendAdapter"]
