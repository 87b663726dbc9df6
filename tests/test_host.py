import pytest

from urlwatch.host import host_event, host_of, shorten_event


@pytest.mark.parametrize(
    "url, expected",
    [
        ("http://example.com/page", "example.com"),
        ("https://WWW.Example.COM:8443/x?y=1", "example.com"),
        ("example.org", "example.org"),
        ("example.org/path", "example.org"),
        ("http://sub.example.net.", "sub.example.net"),
        ("http://[::1]:8080/", "::1"),
        ("", ""),
        ("http://[::1/", ""),
        ("http://", ""),
    ],
)
def test_host_of(url, expected):
    assert host_of(url) == expected


def test_event_names():
    assert host_event("youtube.com") == "url.host.youtube.com"
    assert shorten_event("all") == "url.shorten.all"
