"""Rupee formatting, amounts in words and display names."""

from decimal import Decimal, ROUND_HALF_UP


def _to_paise(amount):
    return int(Decimal(str(amount)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP) * 100)


def group_indian(digits):
    """Group a digit string the Indian way: 12,34,567."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_inr(amount):
    """``1234567.891`` -> ``₹12,34,567.89``; negative amounts put the sign first."""
    paise = _to_paise(amount or 0)
    sign = "-" if paise < 0 else ""
    rupees, fraction = divmod(abs(paise), 100)
    return f"{sign}₹{group_indian(str(rupees))}.{fraction:02d}"


def format_date(value):
    if not value:
        return "N/A"
    return value.strftime("%d %b %Y")


def number_to_words(num):
    """Whole-number words in crore/lakh/thousand grouping.

    Crore counts above 99 are spelled out recursively ("One Hundred and
    Fifty Crore"). Negative numbers get a "Negative" prefix; anything that
    is not a number reads as "Zero". Fractions are the caller's business:
    ``amount_in_words`` passes rupees and paise separately.
    """
    try:
        num = int(num)
    except (ValueError, TypeError):
        return "Zero"

    if num == 0:
        return "Zero"

    if num < 0:
        return "Negative " + number_to_words(abs(num))

    units = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight",
             "Nine", "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen",
             "Sixteen", "Seventeen", "Eighteen", "Nineteen"]
    tens = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy",
            "Eighty", "Ninety"]

    def convert_chunk(n):
        if n < 20:
            return units[n]
        elif n < 100:
            return tens[n // 10] + (" " + units[n % 10] if n % 10 != 0 else "")
        return units[n // 100] + " Hundred" + (" and " + convert_chunk(n % 100) if n % 100 != 0 else "")

    parts = []

    # Crores may exceed 99, so they go through the full conversion
    if num >= 10000000:
        parts.append(number_to_words(num // 10000000) + " Crore")
        num %= 10000000

    if num >= 100000:
        parts.append(convert_chunk(num // 100000) + " Lakh")
        num %= 100000

    if num >= 1000:
        parts.append(convert_chunk(num // 1000) + " Thousand")
        num %= 1000

    if num > 0:
        parts.append(convert_chunk(num))

    return " ".join(parts)


def amount_in_words(amount):
    """``1250.5`` -> ``Rupees One Thousand Two Hundred and Fifty and Fifty Paise Only``."""
    rupees, paise = divmod(abs(_to_paise(amount or 0)), 100)
    words = "Rupees " + number_to_words(rupees)
    if paise:
        words += " and " + number_to_words(paise) + " Paise"
    return words + " Only"


def display_name(record):
    """The one name shown for a saved quotation on every screen."""
    if record.title:
        return record.title
    if record.quotation_number:
        return record.quotation_number
    return f"Quotation {record.id}"
