"""
Known countries with their dial codes and national phone number lengths.

Digit counts are for the national significant number, i.e. without the
dial code and without a trunk prefix.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Country:
    name: str
    dial_code: str
    min_digits: int
    max_digits: int


COUNTRIES: tuple[Country, ...] = (
    Country("United States", "+1", 10, 10),
    Country("Canada", "+1", 10, 10),
    Country("Russia", "+7", 10, 10),
    Country("Egypt", "+20", 10, 10),
    Country("South Africa", "+27", 9, 9),
    Country("Greece", "+30", 10, 10),
    Country("Netherlands", "+31", 9, 9),
    Country("Belgium", "+32", 8, 9),
    Country("France", "+33", 9, 9),
    Country("Spain", "+34", 9, 9),
    Country("Hungary", "+36", 8, 9),
    Country("Italy", "+39", 9, 11),
    Country("Romania", "+40", 9, 9),
    Country("Switzerland", "+41", 9, 9),
    Country("Austria", "+43", 10, 13),
    Country("United Kingdom", "+44", 9, 10),
    Country("Denmark", "+45", 8, 8),
    Country("Sweden", "+46", 7, 9),
    Country("Norway", "+47", 8, 8),
    Country("Poland", "+48", 9, 9),
    Country("Germany", "+49", 10, 11),
    Country("Peru", "+51", 9, 9),
    Country("Mexico", "+52", 10, 10),
    Country("Argentina", "+54", 10, 10),
    Country("Brazil", "+55", 10, 11),
    Country("Chile", "+56", 9, 9),
    Country("Colombia", "+57", 10, 10),
    Country("Malaysia", "+60", 9, 10),
    Country("Australia", "+61", 9, 9),
    Country("Indonesia", "+62", 9, 12),
    Country("Philippines", "+63", 10, 10),
    Country("New Zealand", "+64", 8, 10),
    Country("Singapore", "+65", 8, 8),
    Country("Thailand", "+66", 9, 9),
    Country("Japan", "+81", 10, 10),
    Country("South Korea", "+82", 9, 10),
    Country("Vietnam", "+84", 9, 10),
    Country("China", "+86", 11, 11),
    Country("Turkey", "+90", 10, 10),
    Country("India", "+91", 10, 10),
    Country("Pakistan", "+92", 10, 10),
    Country("Morocco", "+212", 9, 9),
    Country("Nigeria", "+234", 10, 10),
    Country("Kenya", "+254", 9, 9),
    Country("Portugal", "+351", 9, 9),
    Country("Ireland", "+353", 9, 9),
    Country("Finland", "+358", 6, 10),
    Country("Czech Republic", "+420", 9, 9),
    Country("Hong Kong", "+852", 8, 8),
    Country("Bangladesh", "+880", 10, 10),
    Country("Israel", "+972", 8, 9),
    Country("United Arab Emirates", "+971", 8, 9),
    Country("Saudi Arabia", "+966", 9, 9),
)

KNOWN_DIAL_CODES: frozenset[str] = frozenset(c.dial_code for c in COUNTRIES)


def find_by_dial_code(dial_code: Optional[str]) -> Optional[Country]:
    """First country using ``dial_code``. Shared codes (+1) have equal rules."""
    if not dial_code:
        return None
    code = dial_code.strip()
    for country in COUNTRIES:
        if country.dial_code == code:
            return country
    return None


def country_choice_value(country: Country) -> str:
    """Stored value for a country picker answer: "Label|+Code"."""
    return f"{country.name}|{country.dial_code}"
