from core.models.urls import UrlInfo
from urlwatch.assembler import MessageAssembler
from core.models.urls import FetchResult
from urlwatch.handler import DefaultUrlHandler, extract_title, format_size


def _info(**kwargs) -> UrlInfo:
    defaults = {
        "url": "http://example.com/page",
        "body": b"<html><title>  Hello &amp;\n  World </title></html>",
        "headers": {"content-type": ["text/html"]},
        "status": 200,
        "elapsed": 1.234,
    }
    defaults.update(kwargs)
    return UrlInfo(**defaults)


def test_format_size():
    assert format_size(512) == "512 B"
    assert format_size(1536) == "1.5 KB"
    assert format_size(5 * 1024 * 1024) == "5.0 MB"


def test_extract_title_unescapes_and_collapses():
    assert extract_title(_info()) == "Hello & World"


def test_extract_title_honours_charset():
    info = _info(
        body="<title>Café</title>".encode("latin-1"),
        headers={"content-type": ["text/html; charset=ISO-8859-1"]},
    )
    assert extract_title(info) == "Café"


def test_extract_title_unknown_charset_falls_back_to_utf8():
    info = _info(
        body="<title>Café</title>".encode("utf-8"),
        headers={"content-type": ["text/html; charset=bogus-8"]},
    )
    assert extract_title(info) == "Café"


def test_extract_title_skips_commented_out_title():
    info = _info(body=b"<head><!-- <title>Old draft</title> --><title>Real</title></head>")
    assert DefaultUrlHandler("%title%").handle(info) == "Real"


def test_extract_title_reads_meta_charset_when_header_has_none():
    body = (
        b'<html><head><meta charset="windows-1251"><title>'
        + "Привет, мир".encode("cp1251")
        + b"</title></head></html>"
    )
    info = _info(body=body, headers={"content-type": ["text/html"]})
    assert extract_title(info) == "Привет, мир"


def test_extract_title_ignores_non_html_bodies():
    info = _info(body=b"<title>not a page</title>", headers={"content-type": ["text/plain"]})
    assert extract_title(info) == ""


def test_extract_title_truncates_long_titles():
    info = _info(body=b"<title>" + b"a" * 400 + b"</title>")
    title = extract_title(info)
    assert len(title) == 300
    assert title.endswith("…")


def test_default_pattern():
    text = DefaultUrlHandler().handle(_info())
    assert text == "[ http://example.com/page ] Hello & World (200, 1.23s)"


def test_short_url_replaces_url_short():
    text = DefaultUrlHandler().handle(_info(short_url="https://is.gd/abc"))
    assert text.startswith("[ https://is.gd/abc ]")


def test_composed_title_without_html_title_uses_type_and_size():
    info = _info(
        body=b"\x89PNG....",
        headers={"content-type": ["image/png"], "content-length": ["2048"]},
    )
    assert DefaultUrlHandler("%composed-title%").handle(info) == "image/png, 2.0 KB"


def test_composed_title_falls_back_to_body_length():
    info = _info(body=b"x" * 10, headers={"content-type": ["text/plain; charset=utf-8"]})
    assert DefaultUrlHandler("%composed-title%").handle(info) == "text/plain, 10 B"


def test_composed_title_reports_errors():
    info = _info(body=b"", headers={}, status=0, error="timed out")
    assert DefaultUrlHandler("%composed-title%").handle(info) == "Error: timed out"


def test_custom_pattern_with_header_and_unknown_placeholders():
    handler = DefaultUrlHandler("%url-long% %header-Content-Type% %nope% %timing2%ms")
    assert handler.handle(_info()) == "http://example.com/page text/html 1234ms"


def test_assembler_uses_configured_handler():
    class UpperHandler:
        def handle(self, info):
            return info.url.upper()

    assembler = MessageAssembler(UpperHandler())
    text = assembler.assemble("http://a.example/", FetchResult(status=200), None)
    assert text == "HTTP://A.EXAMPLE/"
