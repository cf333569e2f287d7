import pytest

from app.services.rates.base import UnknownCurrencyError
from app.services.rates.conversion import convert_amount, rebase

RATES = {"USD": 1.0, "EUR": 0.9, "INR": 83.0}


def test_rebase_divides_by_requested_rate():
    out = rebase(RATES, "eur")
    assert out["EUR"] == pytest.approx(1.0)
    assert out["USD"] == pytest.approx(1 / 0.9)
    assert out["INR"] == pytest.approx(83.0 / 0.9)


def test_rebase_does_not_mutate_input():
    source = dict(RATES)
    rebase(source, "INR")
    assert source == RATES


@pytest.mark.parametrize("rates,base", [(RATES, "XXX"), ({"USD": 1.0, "ZZZ": 0.0}, "ZZZ")])
def test_rebase_missing_or_zero_pivot_returns_raw(rates, base):
    out = rebase(rates, base)
    assert out == rates
    assert out is not rates


def test_convert_goes_through_base():
    res = convert_amount(RATES, "USD", "eur", "inr", 10)
    assert res.result == pytest.approx(10 / 0.9 * 83.0)
    assert (res.from_currency, res.to_currency) == ("EUR", "INR")
    assert (res.from_rate, res.to_rate) == (0.9, 83.0)


def test_convert_unknown_source_and_target():
    with pytest.raises(UnknownCurrencyError):
        convert_amount(RATES, "USD", "XXX", "USD", 1)
    with pytest.raises(UnknownCurrencyError) as exc_info:
        convert_amount(RATES, "USD", "USD", "yyy", 1)
    assert exc_info.value.code == "YYY"
    assert "YYY" in str(exc_info.value)


def test_convert_zero_amount():
    assert convert_amount(RATES, "USD", "USD", "INR", 0).result == 0
