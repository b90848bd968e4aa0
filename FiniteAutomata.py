from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import IO, Iterator, List, Optional, Sequence, Set, Tuple, Union

logger = logging.getLogger(__name__)

# ============================ Configuración básica ============================
FIRST_SYMBOL = "a"        # el símbolo 0 se escribe 'a', el 1 'b', ...
MAX_ALPHABET_SIZE = 26    # solo letras minúsculas en el formato de texto

Word = Union[str, Sequence[int]]

# ================================= Errores ===================================
class AutomatonError(ValueError):
    """ Base de los errores de este paquete. """


class MalformedInput(AutomatonError):
    """ El texto de entrada termina antes de tiempo o viola la estructura. """


class InvalidAutomaton(AutomatonError):
    """ El autómata tiene estados o símbolos fuera de rango. """


class ResourceExhausted(MemoryError):
    """
    Falta de memoria durante una conversión. No es un error de entrada:
    no hereda de AutomatonError ni de ValueError.
    """


# ============================== Símbolos =====================================
def symbol_to_char(sym: int) -> str:
    return chr(ord(FIRST_SYMBOL) + sym)


def char_to_symbol(ch: str) -> int:
    return ord(ch) - ord(FIRST_SYMBOL)


def word_to_symbols(w: Word) -> List[int]:
    if isinstance(w, str):
        return [char_to_symbol(ch) for ch in w]
    return list(w)


# =============================== Grafo del AF ================================
@dataclass
class Transition:
    symbol: int
    to: int


@dataclass
class State:
    id: int
    is_final: bool = False
    trans: List[Transition] = field(default_factory=list)  # multiconjunto, sin orden


class Automaton:
    """
    Autómata finito (AFN o AFD) sin transiciones ε.

    Los símbolos son enteros en [0, alphabet_size) y los estados se
    identifican por su posición en `states`.
    """

    def __init__(self, alphabet_size: int, state_count: int = 0, initial_state: int = 0):
        self.alphabet_size = alphabet_size
        self.initial_state = initial_state
        self.states: List[State] = [State(i) for i in range(state_count)]

    @classmethod
    def allocate(cls, alphabet_size: int, state_count: int, initial_state: int = 0) -> "Automaton":
        return cls(alphabet_size, state_count, initial_state)

    @property
    def state_count(self) -> int:
        return len(self.states)

    def add_state(self, final: bool = False) -> int:
        sid = len(self.states)
        self.states.append(State(sid, final))
        return sid

    # No valida rangos: eso lo hace quien construye desde texto, o validate().
    def add_transition(self, u: int, sym: int, v: int):
        self.states[u].trans.append(Transition(sym, v))

    def set_final(self, u: int):
        self.states[u].is_final = True

    def final_states(self) -> List[int]:
        return [s.id for s in self.states if s.is_final]

    def transitions(self) -> Iterator[Tuple[int, int, int]]:
        for s in self.states:
            for t in s.trans:
                yield s.id, t.symbol, t.to

    def transition_count(self) -> int:
        return sum(len(s.trans) for s in self.states)

    def successors(self, u: int, sym: int) -> List[int]:
        return [t.to for t in self.states[u].trans if t.symbol == sym]

    def validate(self):
        """
        Comprueba el invariante de rangos. Lanza InvalidAutomaton si falla.
        """
        if self.alphabet_size < 0:
            raise InvalidAutomaton(f"Tamaño de alfabeto negativo: {self.alphabet_size}")
        n = self.state_count
        if not 0 <= self.initial_state < n:
            raise InvalidAutomaton(f"Estado inicial {self.initial_state} fuera de [0, {n})")
        for u, sym, v in self.transitions():
            if not 0 <= sym < self.alphabet_size:
                raise InvalidAutomaton(f"Símbolo {sym} fuera de [0, {self.alphabet_size}) en el estado {u}")
            if not 0 <= v < n:
                raise InvalidAutomaton(f"Transición {u} -> {v}: destino fuera de [0, {n})")

    # -------- Propiedades --------
    def is_deterministic(self) -> bool:
        """ Como mucho una transición por símbolo en cada estado. """
        for s in self.states:
            seen: Set[int] = set()
            for t in s.trans:
                if t.symbol in seen:
                    return False
                seen.add(t.symbol)
        return True

    def is_total(self) -> bool:
        """ Exactamente una transición por símbolo en cada estado. """
        full = list(range(self.alphabet_size))
        for s in self.states:
            if sorted(t.symbol for t in s.trans) != full:
                return False
        return True

    # -------- Simulación --------
    def accepts(self, w: Word) -> bool:
        """
        Simula el autómata sobre w (cadena de letras o secuencia de símbolos).
        Para un AFN acepta si alguna de las ejecuciones termina en un estado final.
        """
        cur = {self.initial_state}
        for sym in word_to_symbols(w):
            nxt: Set[int] = set()
            for u in cur:
                nxt.update(self.successors(u, sym))
            if not nxt:
                return False
            cur = nxt
        return any(self.states[u].is_final for u in cur)

    def __repr__(self) -> str:
        return (f"Automaton(alphabet_size={self.alphabet_size}, states={self.state_count}, "
                f"initial={self.initial_state}, finals={self.final_states()}, "
                f"transitions={self.transition_count()})")


# ============================== Lectura (texto) ==============================
class _Tokens:
    def __init__(self, text: str):
        self.items = text.split()
        self.pos = 0

    def exhausted(self) -> bool:
        return self.pos >= len(self.items)

    def remaining(self) -> int:
        return len(self.items) - self.pos

    def next(self, what: str) -> str:
        if self.exhausted():
            raise MalformedInput(f"Entrada truncada: falta {what}")
        tok = self.items[self.pos]
        self.pos += 1
        return tok

    def next_int(self, what: str) -> int:
        tok = self.next(what)
        try:
            return int(tok)
        except ValueError:
            raise MalformedInput(f"Se esperaba un entero para {what}, se obtuvo {tok!r}") from None


def _check_state(sid: int, n: int, what: str):
    if not 0 <= sid < n:
        raise MalformedInput(f"{what} {sid} fuera de [0, {n})")


def parse_automaton(text: str) -> Automaton:
    """
    Construye un Automaton a partir de la descripción en texto:

        tamaño_alfabeto
        número_de_estados
        estado_inicial
        k f1 ... fk
        origen símbolo destino      (cero o más líneas)
    """
    toks = _Tokens(text)
    alphabet_size = toks.next_int("el tamaño del alfabeto")
    state_count = toks.next_int("el número de estados")
    initial = toks.next_int("el estado inicial")
    final_count = toks.next_int("el número de estados finales")

    if not 1 <= alphabet_size <= MAX_ALPHABET_SIZE:
        raise MalformedInput(f"Tamaño de alfabeto {alphabet_size} fuera de [1, {MAX_ALPHABET_SIZE}]")
    if state_count < 1:
        raise MalformedInput(f"Número de estados inválido: {state_count}")
    _check_state(initial, state_count, "Estado inicial")
    if final_count < 0:
        raise MalformedInput(f"Número de estados finales negativo: {final_count}")

    fa = Automaton.allocate(alphabet_size, state_count, initial)
    for _ in range(final_count):
        f = toks.next_int("un estado final")
        _check_state(f, state_count, "Estado final")
        fa.set_final(f)

    while not toks.exhausted():
        if toks.remaining() < 3:
            raise MalformedInput("Transición incompleta al final de la entrada")
        u = toks.next_int("el origen de una transición")
        ch = toks.next("el símbolo de una transición")
        v = toks.next_int("el destino de una transición")
        _check_state(u, state_count, "Origen")
        _check_state(v, state_count, "Destino")
        sym = char_to_symbol(ch) if len(ch) == 1 else -1
        if not 0 <= sym < alphabet_size:
            raise MalformedInput(f"Símbolo {ch!r} fuera del alfabeto "
                                 f"{FIRST_SYMBOL}..{symbol_to_char(alphabet_size - 1)}")
        fa.add_transition(u, sym, v)

    logger.debug("AF leído: %r", fa)
    return fa


def read_automaton(path: str, encoding: str = "utf-8") -> Automaton:
    with open(path, "r", encoding=encoding) as fp:
        try:
            text = fp.read()
        except UnicodeDecodeError as e:
            raise MalformedInput(f"{path}: no es texto {encoding}: {e}") from e
    return parse_automaton(text)


# ============================ Escritura (texto) ==============================
def format_automaton(fa: Automaton) -> str:
    """ Inverso de parse_automaton, una transición por línea. """
    if fa.alphabet_size > MAX_ALPHABET_SIZE:
        raise InvalidAutomaton(f"No se puede escribir un alfabeto de {fa.alphabet_size} símbolos "
                               f"(máximo {MAX_ALPHABET_SIZE}, {FIRST_SYMBOL}..{symbol_to_char(MAX_ALPHABET_SIZE - 1)})")
    finals = fa.final_states()
    lines = [
        str(fa.alphabet_size),
        str(fa.state_count),
        str(fa.initial_state),
        " ".join([str(len(finals))] + [str(f) for f in finals]),
    ]
    for u, sym, v in fa.transitions():
        lines.append(f"{u} {symbol_to_char(sym)} {v}")
    return "\n".join(lines) + "\n"


def write_automaton(fa: Automaton, fp: IO[str]):
    fp.write(format_automaton(fa))


def automaton_from_table(alphabet_size: int, state_count: int, initial: int,
                         finals: Sequence[int], edges: Sequence[Tuple[int, Union[int, str], int]],
                         validate: bool = True) -> Automaton:
    """
    Atajo para construir autómatas en código (los símbolos pueden ser letras).
    """
    fa = Automaton.allocate(alphabet_size, state_count, initial)
    for f in finals:
        fa.set_final(f)
    for u, sym, v in edges:
        fa.add_transition(u, char_to_symbol(sym) if isinstance(sym, str) else sym, v)
    if validate:
        fa.validate()
    return fa


def describe(fa: Automaton, title: Optional[str] = None) -> str:
    head = f"{title}\n" if title else ""
    return head + format_automaton(fa)
