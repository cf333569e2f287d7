"""Currency constants shared by the query layer.

FALLBACK_SYMBOLS is served by /api/symbols until the first symbol fetch lands.
"""

from typing import Dict

CURRENCY_CODE_PATTERN = r"^[A-Za-z]{3}$"

FALLBACK_SYMBOLS: Dict[str, str] = {
    "USD": "US Dollar",
    "INR": "Indian Rupee",
    "EUR": "Euro",
    "GBP": "British Pound",
}
