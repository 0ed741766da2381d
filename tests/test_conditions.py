import pytest

from delivery_fee.rules.conditions import classify_phenomenon

VOCABULARY = {3: {"glaze", "hail", "thunder"}, 2: {"snow", "sleet"}, 1: {"rain"}}


@pytest.mark.parametrize(
    "phenomenon, expected",
    [
        ("Glaze", 3),
        ("Thunderstorm", 3),
        ("Light snow shower", 2),
        ("Moderate sleet", 2),
        ("Light rain", 1),
        ("Few clouds", 0),
        ("", 0),
        (None, 0),
    ],
)
def test_classify_phenomenon(phenomenon, expected):
    assert classify_phenomenon(phenomenon, VOCABULARY) == expected


def test_most_severe_grade_wins():
    # "rain" (1), "snow" (2) and "thunder" (3) all occur
    assert classify_phenomenon("Thunder with rain and snow", VOCABULARY) == 3
    assert classify_phenomenon("Rain and snow", VOCABULARY) == 2


def test_missing_grades_are_skipped():
    assert classify_phenomenon("heavy rain", {1: ["RAIN"]}) == 1
    assert classify_phenomenon("hail", {}) == 0
