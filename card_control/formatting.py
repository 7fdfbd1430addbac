"""Money, date and CSV helpers for the transaction list (pt-BR conventions)."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Union

import pandas as pd

from card_control.config import CURRENCY
from card_control.errors import ValidationError
from card_control.models import Transaction


def format_currency(value: Union[Decimal, int, float, str]) -> str:
    """``150`` -> ``R$ 150,00``; ``1234.5`` -> ``R$ 1.234,50``."""
    d = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if d < 0 else ""
    # format with US separators, then swap them
    text = f"{abs(d):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}{CURRENCY} {text}"


def format_date(value: Union[date, str]) -> str:
    """``2024-06-19`` -> ``19/06/2024``."""
    if isinstance(value, str):
        value = date.fromisoformat(value)
    return value.strftime("%d/%m/%Y")


def parse_amount(text: str) -> Decimal:
    """
    Parse the amount typed in the form.

    Accepts ``150``, ``150.00``, ``150,00`` and ``1.234,50``. At most two
    decimal places are allowed, so ``1.500`` is rejected rather than read
    as one and a half.

    Raises:
        ValidationError: If the text is not a non-negative number of cents.
    """
    cleaned = (text or "").strip().replace(CURRENCY, "").replace(" ", "")
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValidationError(f"Valor inválido: {text!r}")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"Valor inválido: {text!r}")
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"Valor com mais de dois decimais: {text!r}")
    return amount


def transactions_to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    rows = [
        {
            "Nome": t.person_name,
            "Data": format_date(t.transaction_date),
            "Valor": float(t.amount),
            "Anotações": t.notes or "",
            "Sincronizado": t.is_synced,
        }
        for t in transactions
    ]
    return pd.DataFrame(rows, columns=["Nome", "Data", "Valor", "Anotações", "Sincronizado"])


def transactions_csv(transactions: Iterable[Transaction]) -> bytes:
    return transactions_to_frame(transactions).to_csv(index=False).encode("utf-8")
