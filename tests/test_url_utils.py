"""
URL Utility Tests
"""

import pytest

from sitemap_request_list.utils.url import (
    compute_unique_key,
    is_http_url,
    normalize_url,
    request_id,
)


class TestNormalizeUrl:
    def test_lowercases_scheme_and_host(self):
        assert normalize_url("HTTP://Example.COM/Path") == "http://example.com/Path"

    def test_strips_fragment(self):
        assert normalize_url("http://example.com/a#top") == "http://example.com/a"

    def test_strips_tracking_params_and_sorts_query(self):
        assert (
            normalize_url("http://example.com/?b=2&utm_source=x&a=1")
            == "http://example.com/?a=1&b=2"
        )

    def test_default_port_dropped(self):
        assert normalize_url("https://example.com:443/x") == "https://example.com/x"
        assert normalize_url("http://example.com:8080/x") == "http://example.com:8080/x"

    def test_empty_path_becomes_root(self):
        assert normalize_url("http://example.com") == "http://example.com/"

    @pytest.mark.parametrize(
        "url",
        [None, "", "ftp://example.com/", "/relative", "http://", "http://[::1/bad"],
    )
    def test_rejects_unusable(self, url):
        assert normalize_url(url) is None

    def test_rejects_too_long(self):
        assert normalize_url("http://example.com/" + "a" * 3000) is None


def test_is_http_url():
    assert is_http_url("https://example.com/")
    assert not is_http_url("javascript:void(0)")


def test_compute_unique_key_raises_for_invalid():
    with pytest.raises(ValueError):
        compute_unique_key("not a url")


def test_request_id_is_deterministic():
    key = compute_unique_key("http://example.com/a")

    assert request_id(key) == request_id(key)
    assert len(request_id(key)) == 16
    assert request_id(key) != request_id(compute_unique_key("http://example.com/b"))


def test_malformed_ipv6_is_not_http_url():
    assert not is_http_url("http://[::1/bad")
    with pytest.raises(ValueError):
        compute_unique_key("http://[::1/bad")
