import io

import pytest

from FiniteAutomata import (
    Automaton,
    InvalidAutomaton,
    MalformedInput,
    automaton_from_table,
    format_automaton,
    parse_automaton,
    read_automaton,
    write_automaton,
)

A_PLUS = """1
2
0
1 1
0 a 0
0 a 1
"""


def test_allocate_starts_without_finals_or_transitions():
    fa = Automaton.allocate(3, 4, 2)
    assert fa.state_count == 4
    assert fa.initial_state == 2
    assert fa.final_states() == []
    assert fa.transition_count() == 0


def test_duplicate_transitions_are_kept():
    fa = Automaton.allocate(1, 2)
    fa.add_transition(0, 0, 1)
    fa.add_transition(0, 0, 1)
    assert fa.successors(0, 0) == [1, 1]
    assert not fa.is_deterministic()


def test_add_state_and_set_final():
    fa = Automaton(2)
    assert fa.add_state() == 0
    assert fa.add_state(final=True) == 1
    fa.set_final(0)
    assert fa.final_states() == [0, 1]


def test_parse_a_plus(a_plus_nfa):
    fa = parse_automaton(A_PLUS)
    assert fa.alphabet_size == 1
    assert fa.state_count == 2
    assert fa.initial_state == 0
    assert fa.final_states() == [1]
    assert list(fa.transitions()) == list(a_plus_nfa.transitions())


def test_parse_accepts_free_whitespace():
    fa = parse_automaton("2 3 0 2 1 2   0 a 1\n1 b 2")
    assert fa.final_states() == [1, 2]
    assert list(fa.transitions()) == [(0, 0, 1), (1, 1, 2)]


def test_format_matches_input_text():
    assert format_automaton(parse_automaton(A_PLUS)) == A_PLUS


def test_format_without_finals():
    fa = Automaton.allocate(2, 1)
    assert format_automaton(fa) == "2\n1\n0\n0\n"


def test_write_and_read(tmp_path):
    fa = parse_automaton(A_PLUS)
    buf = io.StringIO()
    write_automaton(fa, buf)
    p = tmp_path / "fa.txt"
    p.write_text(buf.getvalue(), encoding="utf-8")
    assert format_automaton(read_automaton(str(p))) == A_PLUS


@pytest.mark.parametrize("text, fragment", [
    ("", "truncada"),
    ("1 2 0", "truncada"),
    ("1 2 0 2 1", "truncada"),
    ("x 2 0 0", "entero"),
    ("0 2 0 0", "alfabeto"),
    ("27 2 0 0", "alfabeto"),
    ("1 0 0 0", "estados"),
    ("1 2 2 0", "inicial"),
    ("1 2 -1 0", "inicial"),
    ("1 2 0 -1", "negativo"),
    ("1 2 0 1 5", "final"),
    ("1 2 0 0 0 b 1", "alfabeto"),
    ("1 2 0 0 0 ab 1", "alfabeto"),
    ("1 2 0 0 0 a 2", "Destino"),
    ("1 2 0 0 3 a 1", "Origen"),
    ("1 2 0 0 0 a 1 1 a", "incompleta"),
])
def test_parse_rejects_malformed(text, fragment):
    with pytest.raises(MalformedInput, match=fragment):
        parse_automaton(text)


def test_read_non_utf8_is_malformed(tmp_path):
    p = tmp_path / "bin.txt"
    p.write_bytes(b"\xff\xfe\x00\x81")
    with pytest.raises(MalformedInput):
        read_automaton(str(p))


@pytest.mark.parametrize("edges", [
    [(0, 1, 0)],
    [(0, -1, 0)],
    [(0, 0, 2)],
])
def test_validate_rejects_out_of_range(edges):
    fa = automaton_from_table(1, 2, 0, [], edges, validate=False)
    with pytest.raises(InvalidAutomaton):
        fa.validate()


def test_validate_rejects_bad_initial():
    with pytest.raises(InvalidAutomaton):
        Automaton.allocate(1, 2, 5).validate()


def test_nfa_acceptance(ends_with_ab_nfa):
    assert ends_with_ab_nfa.accepts("ab")
    assert ends_with_ab_nfa.accepts("bbaab")
    assert ends_with_ab_nfa.accepts([0, 1])
    assert not ends_with_ab_nfa.accepts("")
    assert not ends_with_ab_nfa.accepts("aba")


def test_empty_word_accepted_only_when_initial_is_final():
    fa = automaton_from_table(1, 1, 0, [0], [])
    assert fa.accepts("")
    assert not fa.accepts("a")


def test_is_total():
    fa = automaton_from_table(2, 1, 0, [], [(0, "a", 0), (0, "b", 0)])
    assert fa.is_deterministic()
    assert fa.is_total()
    fa.add_transition(0, 0, 0)
    assert not fa.is_total()
    assert not automaton_from_table(2, 1, 0, [], [(0, "a", 0)]).is_total()


def test_format_rejects_alphabet_without_letters():
    fa = automaton_from_table(27, 1, 0, [], [(0, 26, 0)])
    with pytest.raises(InvalidAutomaton, match="27"):
        format_automaton(fa)
