import matplotlib

matplotlib.use("Agg")

import pytest

from FiniteAutomata import automaton_from_table


@pytest.fixture()
def a_plus_nfa():
    """ AFN de a+ : 0 -a-> 0, 0 -a-> 1, final {1}. """
    return automaton_from_table(1, 2, 0, [1], [(0, "a", 0), (0, "a", 1)])


@pytest.fixture()
def ends_with_ab_nfa():
    """ Palabras sobre {a, b} que terminan en 'ab'. """
    return automaton_from_table(
        2, 3, 0, [2],
        [(0, "a", 0), (0, "b", 0), (0, "a", 1), (1, "b", 2)],
    )


@pytest.fixture()
def write_input(tmp_path):
    def _write(text, name="nfa.txt"):
        p = tmp_path / name
        p.write_text(text, encoding="utf-8")
        return str(p)
    return _write
