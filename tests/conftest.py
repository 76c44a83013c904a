"""Global test fixtures and setup"""

import locale

import pytest


@pytest.fixture(autouse=True)
def predictable_locale():
    """Dates are formatted in the user's locale, so pin one down"""
    old_locale = locale.setlocale(locale.LC_TIME)
    locale.setlocale(locale.LC_TIME, "C")
    yield
    locale.setlocale(locale.LC_TIME, old_locale)
