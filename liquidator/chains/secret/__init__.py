"""Secret Network chain client."""
from .client import SecretClient, WalletBalance

__all__ = ["SecretClient", "WalletBalance"]
