from savvy.providers.base import IMAGE_URL_PLACEHOLDER, BaseProvider
from savvy.providers.registry import ProviderRegistry, create_provider_registry

__all__ = [
    "IMAGE_URL_PLACEHOLDER",
    "BaseProvider",
    "ProviderRegistry",
    "create_provider_registry",
]
