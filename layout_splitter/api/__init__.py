from .client import SplitApiClient

__all__ = ["SplitApiClient"]
