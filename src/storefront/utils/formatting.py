"""Display helpers: Indian-grouped rupee amounts and masked payment identifiers."""


def format_indian_number(amount: float, decimals: int = 2) -> str:
    """Group digits the Indian way: 123456.78 -> "1,23,456.78"."""
    formatted = f"{abs(amount):.{decimals}f}"
    whole, _, fraction = formatted.partition(".")

    last_three = whole[-3:]
    remaining = whole[:-3]
    if remaining:
        pairs = []
        while len(remaining) > 2:
            pairs.insert(0, remaining[-2:])
            remaining = remaining[:-2]
        if remaining:
            pairs.insert(0, remaining)
        whole = ",".join(pairs) + "," + last_three

    sign = "-" if amount < 0 else ""
    return f"{sign}{whole}.{fraction}" if fraction else f"{sign}{whole}"


def format_currency(amount: float, decimals: int = 2) -> str:
    return f"₹{format_indian_number(amount, decimals)}"


def mask_upi_id(upi_id: str) -> str:
    """Keep the local part of a UPI id and hide the handle: "alice@okbank" -> "alice@xxxx"."""
    local_part = upi_id.split("@")[0]
    return f"{local_part}@xxxx"


def last_four_digits(card_number: str) -> str:
    digits = "".join(ch for ch in card_number if ch.isdigit())
    return digits[-4:]
