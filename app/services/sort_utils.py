from __future__ import annotations

import re
import unicodedata

_PO_NUMBER_PATTERN = re.compile(r'PO\d{9,}')


def normalize_sort_text(value: str | None) -> str:
    # NFKC folds full-width/half-width variants so they collate together.
    return unicodedata.normalize('NFKC', (value or '').strip()).casefold()


def extract_po_number(value: str | None) -> str | None:
    match = _PO_NUMBER_PATTERN.search(value or '')
    if not match:
        return None
    return match.group(0)


def product_name_sort_key(product_name: str | None) -> tuple[str, str]:
    return (normalize_sort_text(product_name), product_name or '')
