import pytest

from src.catalog.awards import AwardIndex
from src.catalog.normalize import award_key, legacy_key, normalize_title


@pytest.mark.parametrize(
    "title",
    [
        "The Film (2020 Cut)",
        "  Amélie!! (Le Fabuleux Destin)  ",
        "Portrait de la jeune fille en feu",
        "(((nested) parens",
        "C'est la vie -- encore",
        "",
        "UPPER_case_title 2",
    ],
)
def test_normalize_is_idempotent(title):
    once = normalize_title(title)
    assert normalize_title(once) == once


def test_parenthetical_segments_are_dropped():
    assert normalize_title("The Film (2020 Cut)") == normalize_title("the film") == "the film"


def test_punctuation_collapses_to_single_spaces():
    assert normalize_title("Love, Death & Robots: Vol. 2") == "love death robots vol 2"


def test_accented_letters_split_words_like_the_award_data():
    assert normalize_title("Amélie") == "am lie"
    assert award_key("Amélie", 2001) == "am lie-2001"


def test_underscores_are_word_characters():
    assert normalize_title("UPPER_case_title 2") == "upper_case_title 2"


def test_accented_award_title_joins():
    index = AwardIndex.from_document(
        {"films": {"am lie-2001": {"awarded": True, "awards": [{"festival": "cannes"}]}}}
    )
    assert index.lookup("Amélie (Le Fabuleux Destin d'Amélie Poulain)", 2001)["awarded"] is True


def test_none_normalizes_to_empty():
    assert normalize_title(None) == ""


def test_award_key_joins_title_and_year():
    assert award_key("Nomadland", 2020) == "nomadland-2020"
    assert award_key("No Other Land (Lā ʾarḍ ukhrā)", "2024") == "no other land-2024"


def test_legacy_key_matches_old_slugs():
    assert legacy_key("No Other Land", 2024) == "no-other-land-2024"
    assert legacy_key("(500) Days of Summer", 2009) == "-500-days-of-summer-2009"
