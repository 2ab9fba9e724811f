import re

MEN = "Men"
WOMEN = "Women"
UNISEX = "Unisex"
SPECIAL_OFFERS = "Special Offers"

CANONICAL_CATEGORIES = (MEN, WOMEN, UNISEX, SPECIAL_OFFERS)

# "women" contains "men", so WOMEN must be tested first
_WOMEN_RE = re.compile(r"\b(?:women|femei)\b")
_MEN_RE = re.compile(r"\b(?:men|barbati|bărbați)\b")


def resolve_category(text) -> str:
    """
    Map free text (product_type, or name + description) to one of the
    canonical category names. Never raises; falls back to Special Offers.
    """
    s = ("" if text is None else str(text)).lower()
    if _WOMEN_RE.search(s):
        return WOMEN
    if _MEN_RE.search(s):
        return MEN
    if "unisex" in s:
        return UNISEX
    return SPECIAL_OFFERS
