from __future__ import annotations
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

# ============================ Configuración básica ============================
WORD_BITS = 64

StateSetKey = Tuple[int, Tuple[int, ...]]


def words_for(capacity: int) -> int:
    return (capacity + WORD_BITS - 1) // WORD_BITS


# =========================== Conjunto de estados =============================
class StateSet:
    """
    Subconjunto de estados de un AFN como vector de bits de capacidad fija
    (ceil(capacity / 64) palabras). La capacidad nunca cambia.
    """

    __slots__ = ("capacity", "_words")

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f"Capacidad negativa: {capacity}")
        self.capacity = capacity
        self._words: List[int] = [0] * words_for(capacity)

    @classmethod
    def of(cls, capacity: int, members: Iterable[int]) -> "StateSet":
        s = cls(capacity)
        s.update(members)
        return s

    def _locate(self, i: int) -> Tuple[int, int]:
        if not 0 <= i < self.capacity:
            raise IndexError(f"Estado {i} fuera de [0, {self.capacity})")
        return i // WORD_BITS, i % WORD_BITS

    def contains(self, i: int) -> bool:
        w, b = self._locate(i)
        return bool(self._words[w] >> b & 1)

    __contains__ = contains

    def add(self, i: int):
        w, b = self._locate(i)
        self._words[w] |= 1 << b

    def update(self, members: Iterable[int]):
        for i in members:
            self.add(i)

    def is_empty(self) -> bool:
        return not any(self._words)

    def equals(self, other: "StateSet") -> bool:
        return self.capacity == other.capacity and self._words == other._words

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StateSet):
            return NotImplemented
        return self.equals(other)

    # mutable: se indexa por key(), no por hash(self)
    __hash__ = None  # type: ignore[assignment]

    def copy(self) -> "StateSet":
        c = StateSet.__new__(StateSet)
        c.capacity = self.capacity
        c._words = self._words[:]
        return c

    def key(self) -> StateSetKey:
        """ Clave inmutable con el contenido actual. """
        return self.capacity, tuple(self._words)

    def __iter__(self) -> Iterator[int]:
        for w, word in enumerate(self._words):
            base = w * WORD_BITS
            while word:
                low = word & -word
                yield base + low.bit_length() - 1
                word &= word - 1

    def __len__(self) -> int:
        return sum(bin(word).count("1") for word in self._words)

    def __repr__(self) -> str:
        return f"StateSet({self.capacity}, {{{', '.join(map(str, self))}}})"


# ============================ Registro de conjuntos ==========================
class StateSetRegistry:
    """
    Secuencia sin duplicados de StateSet. La posición de cada conjunto es el
    id del estado del AFD y no cambia al crecer el registro.
    """

    def __init__(self):
        self._sets: List[StateSet] = []
        self._index: Dict[StateSetKey, int] = {}

    def lookup_or_insert(self, s: StateSet) -> int:
        k = s.key()
        sid = self._index.get(k)
        if sid is not None:
            return sid
        sid = len(self._sets)
        self._sets.append(s.copy())
        self._index[k] = sid
        return sid

    def contains(self, s: StateSet) -> bool:
        return s.key() in self._index

    __contains__ = contains

    def id_of(self, s: StateSet) -> Optional[int]:
        return self._index.get(s.key())

    def get(self, sid: int) -> StateSet:
        # vista de solo lectura: copy() antes de modificar
        if not 0 <= sid < len(self._sets):
            raise IndexError(f"Id {sid} fuera de [0, {len(self._sets)})")
        return self._sets[sid]

    def size(self) -> int:
        return len(self._sets)

    __len__ = size

    def __iter__(self) -> Iterator[StateSet]:
        return iter(self._sets)
