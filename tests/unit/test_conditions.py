import pytest

from flowforge.compiler.conditions import normalize_operator, parse_condition


def test_pair_symbol_compares_against_oracle_answer():
    condition = parse_condition("ETH/USD < 1750")

    assert condition.left_path == "formattedAnswer"
    assert condition.operator == "LESS_THAN"
    assert condition.right_value == "1750"


@pytest.mark.parametrize(
    "text, operator",
    [
        ("price >= 10", "GREATER_THAN_OR_EQUAL"),
        ("price <= 10", "LESS_THAN_OR_EQUAL"),
        ("price > 10", "GREATER_THAN"),
        ("price == 10", "EQUALS"),
        ("price = 10", "EQUALS"),
        ("price != 10", "NOT_EQUALS"),
    ],
)
def test_two_character_operators_win(text, operator):
    condition = parse_condition(text)
    assert condition.left_path == "price"
    assert condition.operator == operator
    assert condition.right_value == "10"


def test_right_value_drops_currency_and_grouping():
    condition = parse_condition("BTC / USD > $65,000.50")

    assert condition.left_path == "formattedAnswer"
    assert condition.right_value == "65000.50"


@pytest.mark.parametrize("text", ["", "when it is cheap", "< 1750", "price >", None, 5])
def test_unparseable_input_is_empty(text):
    condition = parse_condition(text)

    assert condition.is_empty
    assert condition.model_dump(by_alias=True) == {
        "leftPath": "",
        "operator": "",
        "rightValue": "",
    }


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("<", "LESS_THAN"),
        ("less_than", "LESS_THAN"),
        ("gte", "GREATER_THAN_OR_EQUAL"),
        ("ne", "NOT_EQUALS"),
        ("between", None),
        (None, None),
    ],
)
def test_normalize_operator(raw, expected):
    assert normalize_operator(raw) == expected
