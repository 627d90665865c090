"""
Image Provider System

Hosted text-to-image backends used for character portraits.
"""

from .base_provider import BaseImageProvider, ImageRequest, ImageResult
from .provider_factory import create_image_provider, create_image_providers

__all__ = [
    'BaseImageProvider',
    'ImageRequest',
    'ImageResult',
    'create_image_provider',
    'create_image_providers',
]
