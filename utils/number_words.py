# utils/number_words.py

ONES = ['', 'One', 'Two', 'Three', 'Four', 'Five', 'Six', 'Seven', 'Eight', 'Nine', 'Ten',
        'Eleven', 'Twelve', 'Thirteen', 'Fourteen', 'Fifteen', 'Sixteen', 'Seventeen', 'Eighteen', 'Nineteen']
TENS = ['', '', 'Twenty', 'Thirty', 'Forty', 'Fifty', 'Sixty', 'Seventy', 'Eighty', 'Ninety']


def _hundreds_to_words(n: int) -> str:
    if n == 0:
        return ''
    if n < 20:
        return ONES[n]
    if n < 100:
        ten, one = divmod(n, 10)
        return TENS[ten] + (' ' + ONES[one] if one else '')
    hundred, remainder = divmod(n, 100)
    return ONES[hundred] + ' Hundred' + (' ' + _hundreds_to_words(remainder) if remainder else '')


def _whole_to_words(n: int) -> str:
    if n == 0:
        return 'Zero'

    parts = []
    millions, n = divmod(n, 1_000_000)
    if millions:
        parts.append(_hundreds_to_words(millions) + ' Million')

    thousands, n = divmod(n, 1000)
    if thousands:
        parts.append(_hundreds_to_words(thousands) + ' Thousand')

    if n:
        parts.append(_hundreds_to_words(n))
    return ' '.join(parts)


def number_to_words(amount: float) -> str:
    """
    Spells out a rupee amount for printed documents, e.g.
    1234567.50 -> 'One Million Two Hundred Thirty Four Thousand Five Hundred
    Sixty Seven and Fifty Cents'. Callers append 'Rupees Only'.
    """
    if amount < 0:
        raise ValueError(f"Cannot spell a negative amount: {amount}")

    cents_total = int(round(amount * 100))
    whole, cents = divmod(cents_total, 100)

    words = _whole_to_words(whole)
    if cents:
        words += ' and ' + _hundreds_to_words(cents) + ' Cents'
    return words
