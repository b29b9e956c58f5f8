"""Normalization of display strings scraped from listing cards."""

NARROW_NO_BREAK_SPACE = "\u202f"
NO_BREAK_SPACE = "\xa0"


def clean_price(price: str | None) -> str | None:
    """Normalize a displayed price.

    The site groups thousands with a narrow no-break space (U+202F) and
    separates the currency with a no-break space (U+00A0). The former is
    removed, the latter becomes a regular space, so "1<U+202F>200<U+00A0>€"
    becomes "1200 €". Applying it twice gives the same result as once.

    Empty or missing values are returned unchanged.
    """
    if not price:
        return price
    price = price.replace(NARROW_NO_BREAK_SPACE, "").replace(NO_BREAK_SPACE, " ")
    return price.strip()
