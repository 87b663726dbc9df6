from urlwatch.extractor import extract_urls


def test_extracts_scheme_url_from_sentence():
    assert extract_urls("check http://example.com/page out") == ["http://example.com/page"]


def test_extracts_bare_domain():
    assert extract_urls("see example.org") == ["example.org"]


def test_strips_trailing_punctuation_and_unbalanced_brackets():
    text = "Look (https://example.com/a_(b)) and www.example.net/path."
    assert extract_urls(text) == ["https://example.com/a_(b)", "www.example.net/path"]


def test_keeps_order_and_duplicates():
    text = "https://a.example.com x https://b.example.com https://a.example.com"
    assert extract_urls(text) == [
        "https://a.example.com",
        "https://b.example.com",
        "https://a.example.com",
    ]


def test_ignores_plain_text_and_email_addresses():
    assert extract_urls("") == []
    assert extract_urls("no links here, e.g. version 1.5") == []
    assert extract_urls("mail bob@example.com please") == []
