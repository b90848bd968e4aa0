import logging
import os

import pytest

import SubsetEngine
from SubsetEngine import main

A_PLUS = "1\n2\n0\n1 1\n0 a 0\n0 a 1\n"


def test_converts_file(write_input, capsys):
    assert main([write_input(A_PLUS)]) == 0
    out = capsys.readouterr().out
    assert out == (
        "AF de entrada:\n" + A_PLUS
        + "AF de salida:\n1\n2\n0\n1 1\n0 a 1\n1 a 1\n"
    )


def test_subsets_and_checks(write_input, capsys):
    path = write_input(A_PLUS)
    assert main([path, "--subsets", "--check", "30", "--exhaustive", "4"]) == 0
    out = capsys.readouterr().out
    assert "Subconjuntos:\n0 = {0}\n1 = {0, 1}\n" in out
    assert "Prueba diferencial: 30 coincidencias, 0 discrepancias" in out
    assert "Equivalentes en todas las palabras de longitud <= 4" in out


def test_png_output(write_input, tmp_path):
    path = write_input(A_PLUS, name="aplus.txt")
    png_dir = tmp_path / "png"
    assert main([path, "--png-dir", str(png_dir)]) == 0
    assert sorted(os.listdir(png_dir)) == ["aplus_dfa.png", "aplus_nfa.png"]


def test_usage_error_exits_with_status_2(capsys):
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 2
    assert "usage" in capsys.readouterr().err


def test_missing_file(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        assert main([str(tmp_path / "nope.txt")]) == 1
    assert "No se pudo abrir" in caplog.text


def test_malformed_file_fails(write_input, capsys, caplog):
    with caplog.at_level(logging.ERROR):
        assert main([write_input("1 2 5 0")]) == 1
    assert "Estado inicial 5" in caplog.text
    assert capsys.readouterr().out == ""


def test_check_reports_added_loops(write_input, capsys):
    # 0 es inicial y final, sin transición por 'b'
    path = write_input("2\n2\n0\n1 0\n0 a 1\n")
    assert main([path, "--exhaustive", "2"]) == 1
    out = capsys.readouterr().out
    assert "Contraejemplo: 'b'" in out
    assert "Bucles sin sucesor en el AFN (estado, símbolo): (0, b), (1, a), (1, b)" in out


def test_out_of_memory_has_its_own_message(write_input, monkeypatch, caplog):
    def boom(*args, **kwargs):
        raise MemoryError()

    monkeypatch.setattr(SubsetEngine, "_discover", boom)
    with caplog.at_level(logging.ERROR):
        assert main([write_input(A_PLUS)]) == 1
    assert "Sin memoria" in caplog.text
