"""URL 정규화 테스트."""
import pytest

from utils.url import base_url, is_sitemap_url, normalize_url, same_domain, try_normalize_url


class TestNormalizeUrl:
    """정규화 규칙 테스트."""

    def test_lowercases_scheme_and_host(self):
        assert normalize_url("HTTPS://Blog.Example.COM/Post/1") == "https://blog.example.com/Post/1"

    def test_strips_trailing_slash(self):
        assert normalize_url("https://blog.example.com/post/1/") == "https://blog.example.com/post/1"

    def test_empty_path_becomes_root(self):
        assert normalize_url("https://blog.example.com") == "https://blog.example.com/"
        assert normalize_url("https://blog.example.com/") == "https://blog.example.com/"

    def test_keeps_query_drops_fragment(self):
        assert normalize_url("https://a.com/p/?id=3#top") == "https://a.com/p?id=3"

    def test_equivalent_forms_collapse(self):
        """대소문자/끝 슬래시만 다른 URL 은 같은 키."""
        assert normalize_url("https://A.com/x/") == normalize_url("https://a.com/x")

    @pytest.mark.parametrize("value", ["", "   ", "not a url", "/relative/path"])
    def test_invalid_raises(self, value):
        with pytest.raises(ValueError):
            normalize_url(value)

    def test_try_normalize_returns_none(self):
        assert try_normalize_url("no-scheme") is None


class TestUrlHelpers:
    def test_is_sitemap_url(self):
        assert is_sitemap_url("https://a.com/sitemap.xml")
        assert is_sitemap_url("https://a.com/post-sitemap2.xml")
        assert is_sitemap_url("https://a.com/sitemap/page/1")
        assert not is_sitemap_url("https://a.com/2024/01/hello")
        assert not is_sitemap_url("https://a.com/feedback")

    def test_same_domain_ignores_www(self):
        assert same_domain("https://www.a.com", "https://a.com/post")
        assert not same_domain("https://a.com", "https://b.com/post")

    def test_base_url(self):
        assert base_url("https://Blog.Example.com/some/path?q=1") == "https://blog.example.com"
