from src.sharing.share_link import build_share_url, parse_share_query


def test_build_url_with_companions():
    url = build_share_url("TOK_-9", name=" My list ", removed=["a-1", "b-2"], base_url="https://x/shared")
    assert url == "https://x/shared?name=My+list&favs=TOK_-9&removed=a-1,b-2"


def test_build_url_without_name():
    assert build_share_url("TOK", base_url="https://x/s") == "https://x/s?favs=TOK"


def test_nothing_to_share():
    assert build_share_url("", name="x") == ""


def test_parse_round_trip():
    url = build_share_url("TOK", name="Kino & venner", removed=["k1"], base_url="https://x/s")
    parsed = parse_share_query(url)
    assert parsed.token == "TOK"
    assert parsed.name == "Kino & venner"
    assert parsed.removed == ("k1",)


def test_parse_bare_query_and_missing_params():
    parsed = parse_share_query("favs=abc")
    assert parsed == ("abc", None, ())
    assert parse_share_query("https://x/s?name=") == ("", None, ())
