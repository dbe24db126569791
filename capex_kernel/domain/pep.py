"""PEP (budget element) catalog snapshot."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from capex_kernel.domain.values import parse_brl


@dataclass(frozen=True)
class PepElement:
    """A pre-authorized budget element, referenced by its code."""

    code: str
    amount: Decimal


class PepCatalog:
    """
    Read-only, code-sorted view of the ``Peps`` list.

    Codes are unique: when the store holds the same code twice the first
    occurrence wins.
    """

    def __init__(self, elements: Iterable[PepElement] = ()):
        by_code: dict[str, PepElement] = {}
        for element in elements:
            by_code.setdefault(element.code, element)
        self._elements = {code: by_code[code] for code in sorted(by_code)}

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> PepCatalog:
        elements = []
        for record in records:
            code = str(record.get("Title") or "").strip()
            if not code:
                continue
            elements.append(PepElement(code=code, amount=parse_brl(record.get("amountBrl") or 0)))
        return cls(elements)

    def __contains__(self, code: object) -> bool:
        return code in self._elements

    def __iter__(self) -> Iterator[PepElement]:
        return iter(self._elements.values())

    def __len__(self) -> int:
        return len(self._elements)

    def get(self, code: str | None) -> PepElement | None:
        if code is None:
            return None
        return self._elements.get(code)

    def codes(self) -> tuple[str, ...]:
        return tuple(self._elements)
