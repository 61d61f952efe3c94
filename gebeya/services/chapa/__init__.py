from .client import ChapaClient

__all__ = ["ChapaClient"]
