from integrations.sitemap.client import SitemapClient, SitemapFetchError

__all__ = ["SitemapClient", "SitemapFetchError"]
