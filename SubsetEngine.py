from __future__ import annotations
import argparse
import logging
import os
import random
import sys
from collections import defaultdict, deque
from itertools import product
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
from matplotlib.patches import Arc, Circle, FancyArrowPatch

from FiniteAutomata import (
    Automaton,
    AutomatonError,
    MalformedInput,
    ResourceExhausted,
    describe,
    read_automaton,
    symbol_to_char,
)
from StateSets import StateSet, StateSetRegistry

logger = logging.getLogger(__name__)

# ============================ Configuración básica ============================
DEFAULT_TRIALS = 200     # palabras aleatorias en la prueba diferencial
DEFAULT_MAX_LEN = 6
DEFAULT_SEED = 123

# ======================= Subconjuntos: AFN -> AFD ============================
def move_set(nfa: Automaton, S: StateSet, sym: int) -> StateSet:
    """ Estados del AFN alcanzables desde S consumiendo sym. """
    T = StateSet(nfa.state_count)
    for u in S:
        for t in nfa.states[u].trans:
            if t.symbol == sym:
                T.add(t.to)
    return T


def move_sets(nfa: Automaton, S: StateSet) -> List[StateSet]:
    """
    move(S, c) para todos los símbolos a la vez, indexado por símbolo.
    Recorre cada transición de S una sola vez.
    """
    out = [StateSet(nfa.state_count) for _ in range(nfa.alphabet_size)]
    for u in S:
        for t in nfa.states[u].trans:
            out[t.symbol].add(t.to)
    return out


def _discover(nfa: Automaton, registry: StateSetRegistry) -> List[List[Optional[int]]]:
    """
    Fase 1: recorrido en anchura. El límite del bucle es el tamaño actual del
    registro, que crece a medida que aparecen subconjuntos nuevos.
    Devuelve, por estado descubierto, el id destino de cada símbolo
    (None si el move-set es vacío).
    """
    targets: List[List[Optional[int]]] = []
    u = 0
    while u < registry.size():
        S = registry.get(u)
        row: List[Optional[int]] = []
        for T in move_sets(nfa, S):
            row.append(None if T.is_empty() else registry.lookup_or_insert(T))
        targets.append(row)
        logger.debug("Estado %d = %r -> %s", u, S, row)
        u += 1
    return targets


def _materialize(nfa: Automaton, registry: StateSetRegistry,
                 targets: List[List[Optional[int]]], initial: int) -> Automaton:
    """
    Fase 2: el número de estados ya es fijo. Sin sucesor para un símbolo el
    estado hace un bucle sobre sí mismo (no se crea estado sumidero).
    """
    dfa = Automaton.allocate(nfa.alphabet_size, registry.size(), initial)
    for u in range(dfa.state_count):
        S = registry.get(u)
        if any(nfa.states[s].is_final for s in S):
            dfa.set_final(u)
        for sym, v in enumerate(targets[u]):
            dfa.add_transition(u, sym, u if v is None else v)
    return dfa


def build_dfa_from_nfa(nfa: Automaton) -> Tuple[Automaton, List[FrozenSet[int]]]:
    """
    Construcción de subconjuntos. Devuelve el AFD y, para cada estado del AFD,
    el conjunto de estados del AFN que representa.
    """
    nfa.validate()
    try:
        registry = StateSetRegistry()
        start = StateSet(nfa.state_count)
        start.add(nfa.initial_state)
        initial = registry.lookup_or_insert(start)

        targets = _discover(nfa, registry)
        dfa = _materialize(nfa, registry, targets, initial)
        subsets = [frozenset(S) for S in registry]
    except MemoryError as e:
        raise ResourceExhausted(
            f"Memoria insuficiente al convertir un AFN de {nfa.state_count} estados") from e

    logger.info("AFD construido: %d estados (AFN: %d), %d finales",
                dfa.state_count, nfa.state_count, len(dfa.final_states()))
    return dfa, subsets


def convert_nfa_to_dfa(nfa: Automaton) -> Automaton:
    dfa, _ = build_dfa_from_nfa(nfa)
    return dfa


def empty_moves(nfa: Automaton, subsets: Sequence[FrozenSet[int]]) -> List[Tuple[int, int]]:
    """
    Pares (estado del AFD, símbolo) cuyo move-set es vacío, es decir, los
    bucles añadidos en lugar de un sumidero. Si la lista no es vacía el AFD
    puede aceptar palabras que el AFN rechaza: el bucle conserva la
    finalidad del estado y sigue leyendo.
    """
    out: List[Tuple[int, int]] = []
    for u, S in enumerate(subsets):
        T = move_sets(nfa, StateSet.of(nfa.state_count, S))
        out.extend((u, sym) for sym, M in enumerate(T) if M.is_empty())
    return out


# =============================== Verificación ================================
def random_words(alphabet_size: int, trials: int, max_len: int = DEFAULT_MAX_LEN,
                 seed: int = DEFAULT_SEED) -> List[str]:
    rng = random.Random(seed)
    letters = [symbol_to_char(i) for i in range(alphabet_size)]
    out: List[str] = []
    for _ in range(trials):
        L = rng.randint(0, max_len)
        if letters:
            w = "".join(rng.choice(letters) for _ in range(L))
        else:
            w = ""
        out.append(w)
    return out


def all_words(alphabet_size: int, max_len: int) -> Iterator[str]:
    """ Todas las palabras de longitud 0..max_len, por longitud creciente. """
    letters = [symbol_to_char(i) for i in range(alphabet_size)]
    for L in range(max_len + 1):
        for tup in product(letters, repeat=L):
            yield "".join(tup)


def diff_test(nfa: Automaton, dfa: Automaton, trials: int = DEFAULT_TRIALS,
              max_len: int = DEFAULT_MAX_LEN, seed: int = DEFAULT_SEED) -> Tuple[int, int]:
    """
    Compara AFN y AFD sobre palabras aleatorias. Devuelve (coincidencias, discrepancias).
    """
    words = random_words(nfa.alphabet_size, trials=trials, max_len=max_len, seed=seed)
    oks = 0; mism = 0
    for w in words:
        if nfa.accepts(w) == dfa.accepts(w):
            oks += 1
        else:
            mism += 1
            logger.warning("Discrepancia en %r: AFN=%s AFD=%s", w, nfa.accepts(w), dfa.accepts(w))
    return oks, mism


def find_counterexample(nfa: Automaton, dfa: Automaton, max_len: int) -> Optional[str]:
    for w in all_words(nfa.alphabet_size, max_len):
        if nfa.accepts(w) != dfa.accepts(w):
            return w
    return None


def _delta(fa: Automaton, u: int) -> Dict[int, int]:
    return {t.symbol: t.to for t in fa.states[u].trans}


def are_isomorphic(d1: Automaton, d2: Automaton) -> bool:
    """
    Dos AFD totales son iguales salvo renumeración de estados
    (solo se consideran los estados alcanzables).
    """
    if d1.alphabet_size != d2.alphabet_size:
        return False
    if not (d1.is_deterministic() and d2.is_deterministic()):
        raise ValueError("are_isomorphic requiere autómatas deterministas")
    m12: Dict[int, int] = {d1.initial_state: d2.initial_state}
    m21: Dict[int, int] = {d2.initial_state: d1.initial_state}
    Q = deque([(d1.initial_state, d2.initial_state)])
    while Q:
        u1, u2 = Q.popleft()
        if d1.states[u1].is_final != d2.states[u2].is_final:
            return False
        t1 = _delta(d1, u1)
        t2 = _delta(d2, u2)
        if t1.keys() != t2.keys():
            return False
        for a, v1 in t1.items():
            v2 = t2[a]
            if v1 in m12 or v2 in m21:
                if m12.get(v1) != v2 or m21.get(v2) != v1:
                    return False
                continue
            m12[v1] = v2
            m21[v2] = v1
            Q.append((v1, v2))
    return True


# ============================== Dibujo (PNG) =================================
def layout_positions(fa: Automaton) -> Dict[int, Tuple[float, float]]:
    """
    Columnas por distancia BFS desde el estado inicial; los inalcanzables
    van a la última columna.
    """
    adj = {s.id: sorted({t.to for t in s.trans}) for s in fa.states}
    dist: Dict[int, int] = {}
    if fa.states:
        dist[fa.initial_state] = 0
        q = deque([fa.initial_state])
        while q:
            u = q.popleft()
            for v in adj[u]:
                if v not in dist:
                    dist[v] = dist[u] + 1
                    q.append(v)
    maxd = max(dist.values()) if dist else 0
    for s in adj:
        dist.setdefault(s, maxd + 1)
    levels: Dict[int, List[int]] = {}
    for s, d in dist.items():
        levels.setdefault(d, []).append(s)
    pos: Dict[int, Tuple[float, float]] = {}
    sep_x, sep_y = 2.6, 1.6
    for d in sorted(levels):
        ys = sorted(levels[d])
        n = len(ys)
        for i, s in enumerate(ys):
            pos[s] = (d * sep_x, (i - (n - 1) / 2.0) * sep_y)
    return pos


def draw_automaton_png(fa: Automaton, filename_png: str) -> str:
    pos = layout_positions(fa)
    xs = [p[0] for p in pos.values()] + [0]
    ys = [p[1] for p in pos.values()] + [0]
    x_min, x_max = min(xs) - 1.2, max(xs) + 1.2
    y_min, y_max = min(ys) - 1.2, max(ys) + 1.2

    fig, ax = plt.subplots(figsize=(max(6, (x_max - x_min) * 1.2),
                                    max(4, (y_max - y_min) * 1.2)))
    ax.set_xlim(x_min, x_max); ax.set_ylim(y_min, y_max)
    ax.axis("off")
    R = 0.28

    labels = defaultdict(set)
    for s in fa.states:
        x, y = pos[s.id]
        ax.add_patch(Circle((x, y), R, fill=False, lw=2))
        if s.is_final:
            ax.add_patch(Circle((x, y), R - 0.06, fill=False, lw=2))
        ax.text(x, y, str(s.id), ha="center", va="center", fontsize=10)
        if fa.initial_state == s.id:
            ax.add_patch(FancyArrowPatch((x - 1.0, y), (x - R, y), arrowstyle="->",
                                         lw=1.6, mutation_scale=14))
        for t in s.trans:
            labels[(s.id, t.to)].add(symbol_to_char(t.symbol))

    for (u, v), syms in labels.items():
        x1, y1 = pos[u]; x2, y2 = pos[v]
        lbl = ",".join(sorted(syms))
        if u == v:
            ax.add_patch(Arc((x1, y1 + R + 0.20), 0.8, 0.6, angle=0, theta1=220, theta2=-40, lw=1.5))
            ax.text(x1 + 0.05, y1 + R + 0.7, lbl, fontsize=9)
            continue
        ax.add_patch(FancyArrowPatch((x1, y1), (x2, y2), arrowstyle="->", lw=1.5,
                                     mutation_scale=12, shrinkA=12, shrinkB=12))
        ax.text((x1 + x2) / 2.0, (y1 + y2) / 2.0 + 0.15, lbl, fontsize=9)

    fig.tight_layout()
    if not filename_png.lower().endswith(".png"):
        filename_png += ".png"
    if os.path.dirname(filename_png):
        os.makedirs(os.path.dirname(filename_png), exist_ok=True)
    fig.savefig(filename_png, dpi=150)
    plt.close(fig)
    return filename_png


# ==================================== CLI ====================================
def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="subset-engine",
        description="Convierte un AFN (sin transiciones ε) en un AFD por construcción de subconjuntos.",
    )
    p.add_argument("path", help="Fichero con la descripción del AFN")
    p.add_argument("--subsets", action="store_true",
                   help="Muestra el conjunto de estados del AFN de cada estado del AFD")
    p.add_argument("--check", type=int, default=0, metavar="N",
                   help="Prueba diferencial AFN vs AFD con N palabras aleatorias. "
                        "Los estados sin sucesor para un símbolo hacen un bucle sobre sí mismos, "
                        "así que hay discrepancias cuando ese bucle lleva a aceptar")
    p.add_argument("--exhaustive", type=int, default=None, metavar="L",
                   help="Compara AFN y AFD en todas las palabras de longitud <= L "
                        "(mismas salvedades que --check)")
    p.add_argument("--max-len", type=int, default=DEFAULT_MAX_LEN,
                   help="Longitud máxima de las palabras aleatorias")
    p.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Semilla de la prueba diferencial")
    p.add_argument("--png-dir", default=None, help="Directorio donde dibujar AFN y AFD en PNG")
    p.add_argument("--log-level", default="WARNING",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    return p


def _format_subsets(subsets: Sequence[FrozenSet[int]]) -> str:
    lines = ["Subconjuntos:"]
    for i, S in enumerate(subsets):
        lines.append(f"{i} = {{{', '.join(str(s) for s in sorted(S))}}}")
    return "\n".join(lines) + "\n"


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(levelname)s %(name)s: %(message)s")

    try:
        nfa = read_automaton(args.path)
    except OSError as e:
        logger.error("No se pudo abrir %s: %s", args.path, e)
        return 1
    except MalformedInput as e:
        logger.error("Error al procesar %s: %s", args.path, e)
        return 1

    print(describe(nfa, "AF de entrada:"), end="")
    try:
        dfa, subsets = build_dfa_from_nfa(nfa)
    except ResourceExhausted as e:
        logger.error("Sin memoria al convertir %s: %s", args.path, e)
        return 1
    except AutomatonError as e:
        logger.error("Error al convertir %s: %s", args.path, e)
        return 1
    print(describe(dfa, "AF de salida:"), end="")

    if args.subsets:
        print(_format_subsets(subsets), end="")

    if args.png_dir:
        stem = os.path.splitext(os.path.basename(args.path))[0]
        for tag, fa in (("nfa", nfa), ("dfa", dfa)):
            out = draw_automaton_png(fa, os.path.join(args.png_dir, f"{stem}_{tag}.png"))
            logger.info("Dibujo guardado en %s", out)

    status = 0
    if args.check > 0:
        oks, mism = diff_test(nfa, dfa, trials=args.check, max_len=args.max_len, seed=args.seed)
        print(f"Prueba diferencial: {oks} coincidencias, {mism} discrepancias")
        if mism:
            status = 1
    if args.exhaustive is not None:
        w = find_counterexample(nfa, dfa, args.exhaustive)
        if w is None:
            print(f"Equivalentes en todas las palabras de longitud <= {args.exhaustive}")
        else:
            print(f"Contraejemplo: {w!r}")
            status = 1
    if status:
        loops = empty_moves(nfa, subsets)
        if loops:
            print("Bucles sin sucesor en el AFN (estado, símbolo): "
                  + ", ".join(f"({u}, {symbol_to_char(sym)})" for u, sym in loops))
    return status


if __name__ == "__main__":
    sys.exit(main())
