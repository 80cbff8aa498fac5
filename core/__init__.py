"""Ядро спільних (SSOT) утиліт проєкту.

Цей пакет містить лише загальні, доменно-нейтральні будівельні блоки:
- серіалізацію та UTC-час;
- контракти (типи снапшотів, звітів, повідомлень) між шарами.

Логіка джерел даних живе у `data/`, оркестрація — у `app/`, чат — у
`assistant/`.
"""

from __future__ import annotations

from . import serialization as serialization

__all__ = [
    "serialization",
]
