"""Rule-based item extraction.

Each non-empty line becomes exactly one item. A price is read from, in order:

1. the segment after a separator (`` - ``, en/em dash, tab),
2. a trailing amount (``Jollof Rice ₦3,500``, ``Tea, 200``, ``Shirt 3500 NGN``, ``Burger ₦ 3 500``),
3. a leading currency-marked amount (``₦3,500 Jollof Rice``),
4. a currency-marked amount anywhere in the line.

Lines without any of these keep ``price=None``. Space-grouped thousands are only
read right after a currency marker; a comma followed by one or two digits is a
decimal comma (``12,50``).
"""

import re

from shared.models import ParsedItem

CURRENCY_SYMBOLS = {"₦": "NGN", "$": "USD", "£": "GBP", "€": "EUR"}
CURRENCY_CODES = ("NGN", "USD", "GBP", "EUR")
DEFAULT_ITEM_TYPE = "menu_item"

_SYMBOL = "[" + re.escape("".join(CURRENCY_SYMBOLS)) + "]"
_CODE = "(?:" + "|".join(CURRENCY_CODES) + ")"
_AMOUNT = r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+,\d{1,2}(?!\d)|\d+(?:\.\d+)?"
_SPACED_AMOUNT = r"\d{1,3}(?: \d{3})+(?:\.\d+)?(?!\d)"
_PRICE = (
    rf"(?:(?:{_SYMBOL}|{_CODE})\s?(?:{_SPACED_AMOUNT})|(?:{_SYMBOL}\s?|{_CODE}\s?)?(?:{_AMOUNT}))"
    rf"(?:\s?{_CODE}\b)?"
)
_MARKED_PRICE = rf"(?:{_SYMBOL}\s?|\b{_CODE}\s?)(?:{_SPACED_AMOUNT}|{_AMOUNT})|(?:{_AMOUNT})\s?{_CODE}\b"

_SEPARATOR_RE = re.compile(r"\s*[–—]\s*|\s+-\s+|\t+")
_AMOUNT_RE = re.compile(rf"{_SPACED_AMOUNT}|{_AMOUNT}")
_DECIMAL_COMMA_RE = re.compile(r"\d+,\d{1,2}")
_SYMBOL_RE = re.compile(_SYMBOL)
_CODE_RE = re.compile(rf"\b{_CODE}\b|(?<=\d){_CODE}\b", re.IGNORECASE)
_TRAILING_RE = re.compile(rf"^(?P<name>.+?)[\s,:]+(?P<price>{_PRICE})$", re.IGNORECASE)
_LEADING_RE = re.compile(rf"^(?P<price>{_MARKED_PRICE})[\s,:]+(?P<name>.+)$", re.IGNORECASE)
_MARKED_RE = re.compile(_MARKED_PRICE, re.IGNORECASE)
_SEGMENT_PRICE_RE = re.compile(rf"(?P<price>{_PRICE})\s*$", re.IGNORECASE)

_NAME_STRIP = " \t,:;-–—"


def parse_price(expression: str) -> tuple[float | None, str | None]:
    """Read the numeric amount and currency code out of a price expression."""
    if not expression:
        return None, None

    currency = None
    symbol = _SYMBOL_RE.search(expression)
    if symbol:
        currency = CURRENCY_SYMBOLS[symbol.group(0)]
    else:
        code = _CODE_RE.search(expression)
        if code:
            currency = code.group(0).upper()

    amount = _AMOUNT_RE.search(expression)
    if not amount:
        return None, currency
    digits = amount.group(0).replace(" ", "")
    if _DECIMAL_COMMA_RE.fullmatch(digits):
        return float(digits.replace(",", ".")), currency
    return float(digits.replace(",", "")), currency


def _clean(value: str) -> str:
    return value.strip(_NAME_STRIP)


def parse_line(line: str) -> ParsedItem:
    """Turn one non-empty, trimmed line into an item."""
    name = line
    description = None
    price_expression = ""

    parts = _SEPARATOR_RE.split(line, maxsplit=1)
    if len(parts) == 2 and _clean(parts[0]):
        name, tail = _clean(parts[0]), _clean(parts[1])
        match = _SEGMENT_PRICE_RE.search(tail)
        if match:
            price_expression = match.group("price")
            description = _clean(tail[: match.start()]) or None
        else:
            description = tail or None
    else:
        trailing = _TRAILING_RE.match(line)
        leading = _LEADING_RE.match(line)
        if trailing and _clean(trailing.group("name")):
            name, price_expression = trailing.group("name"), trailing.group("price")
        elif leading:
            name, price_expression = leading.group("name"), leading.group("price")
        else:
            marked = _MARKED_RE.search(line)
            if marked:
                price_expression = marked.group(0)
                name = line[: marked.start()] + " " + line[marked.end():]

    price, currency = parse_price(price_expression)
    name = " ".join(_clean(name).split()) or line
    return ParsedItem(
        name=name,
        price=price,
        currency=currency,
        description=description,
        type=DEFAULT_ITEM_TYPE,
        raw=line,
    )


def parse_text(text: str) -> list[ParsedItem]:
    """Extract one item per non-empty line of ``text``."""
    if not text:
        return []
    lines = (line.strip() for line in re.split(r"\r?\n", text))
    return [parse_line(line) for line in lines if line]
