# Bing Webmaster API Integration
from integrations.bing.client import BingWebmasterClient

__all__ = ["BingWebmasterClient"]
