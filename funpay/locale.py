"""Site locale codes."""

from enum import StrEnum


class Locale(StrEnum):
    """Locales served by FunPay.

    RU is the primary locale: its pages live at the site root. Every other
    locale is served under a /<code>/ path prefix. Codes outside this enum
    are accepted as plain strings and passed through verbatim.
    """

    RU = "ru"
    EN = "en"
    UK = "uk"


PRIMARY_LOCALE = Locale.RU


def is_primary(locale: str | None) -> bool:
    """Return True when the locale needs no URL rewriting."""
    return not locale or locale == PRIMARY_LOCALE
