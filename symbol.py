from __future__ import annotations
from enum import Enum
from typing import Dict, Tuple
import threading


class Commutativity(Enum):
    COMMUTATIVE = "commutative"
    MATRIX = "matrix"
    OPERATOR = "operator"


class Symbol:
    """Interned variable identity.

    Two symbols with the same name and commutativity tag are the same object, so identity
    comparison is enough for equality. The interner only grows.
    """

    __slots__ = ("name", "commutativity", "__weakref__")

    _table: Dict[Tuple[str, Commutativity], "Symbol"] = {}
    _lock = threading.Lock()

    def __new__(cls, name: str, commutativity: Commutativity = Commutativity.COMMUTATIVE) -> "Symbol":
        if not isinstance(name, str) or not name:
            raise ValueError("symbol name must be a non-empty string")
        key = (name, commutativity)
        sym = cls._table.get(key)
        if sym is not None:
            return sym
        with cls._lock:
            sym = cls._table.get(key)
            if sym is None:
                sym = object.__new__(cls)
                object.__setattr__(sym, "name", name)
                object.__setattr__(sym, "commutativity", commutativity)
                cls._table[key] = sym
        return sym

    def __setattr__(self, key, value):
        raise AttributeError("Symbol is immutable")

    def __reduce__(self):
        return (Symbol, (self.name, self.commutativity))

    @property
    def is_commutative(self) -> bool:
        return self.commutativity is Commutativity.COMMUTATIVE

    def sort_key(self) -> Tuple[str, str]:
        return (self.name, self.commutativity.value)

    def __repr__(self) -> str:
        if self.commutativity is Commutativity.COMMUTATIVE:
            return f"Symbol({self.name!r})"
        return f"Symbol({self.name!r}, {self.commutativity})"

    def __str__(self) -> str:
        return self.name


def interned_count() -> int:
    return len(Symbol._table)
