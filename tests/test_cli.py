"""Tests for the callflat command line."""

import textwrap

import pytest

from callflat.cli import main


MODULE = textwrap.dedent("""\
    functions:
      main:
        vars: {a: Int, r: Int, ok: Bool}
        args: [a]
        constraints:
          - call: clamp
            args: [a]
            result: r
            at: main.sil:2:3
          - assert: (>= r 0)
            at: main.sil:3:3
          - assert: ok
            at: main.sil:4:3
      clamp:
        vars: {x: Int, r: Int}
        args: [x]
        ret: r
        constraints:
          - implied: (>= r 0)
            at: clamp.sil:3:5
""")


@pytest.fixture
def module_file(tmp_path):
    path = tmp_path / "module.yml"
    path.write_text(MODULE)
    return path


def test_warnings_give_exit_code_1(module_file, capsys):
    assert main([str(module_file), "--entry", "main"]) == 1
    out = capsys.readouterr().out
    assert "main: 6 constraint(s)" in out
    assert "main.sil:4:3: warning: Failed to parse the assert condition" in out
    assert "Total warnings: 1" in out


def test_clean_entry_gives_exit_code_0(module_file, capsys):
    assert main([str(module_file), "--entry", "clamp"]) == 0
    assert "clamp: 2 constraint(s)" in capsys.readouterr().out


def test_no_warnings_flag(module_file):
    assert main([str(module_file), "--entry", "main", "--no-warnings"]) == 0


def test_all_functions_by_default(module_file, capsys):
    main([str(module_file)])
    out = capsys.readouterr().out
    assert out.index("clamp:") < out.index("main:")


def test_smt2_output(module_file, capsys):
    main([str(module_file), "--entry", "clamp", "--smt2"])
    out = capsys.readouterr().out
    assert out.startswith("; clamp")
    assert out.count("(assert") == 2


def test_entry_points_from_config(module_file, capsys):
    (module_file.parent / ".callflat.yml").write_text("analysis:\n  entry-points: [clamp]\n")
    assert main([str(module_file)]) == 0
    out = capsys.readouterr().out
    assert "clamp:" in out and "main:" not in out


def test_explicit_config_file(module_file, tmp_path, capsys):
    config = tmp_path / "custom.yml"
    config.write_text("analysis:\n  warn-unresolved-asserts: false\n")
    assert main([str(module_file), "--entry", "main", "--config", str(config)]) == 0


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.yml")]) == 3
    assert "File not found" in capsys.readouterr().err


def test_unknown_entry(module_file, capsys):
    assert main([str(module_file), "--entry", "nope"]) == 3
    assert "nope" in capsys.readouterr().err


def test_malformed_summaries(tmp_path, capsys):
    path = tmp_path / "bad.yml"
    path.write_text("functions:\n  f:\n    vars: {x: String}\n")
    assert main([str(path)]) == 3
    assert "unsupported sort" in capsys.readouterr().err


def test_verbose_lists_summaries(module_file, capsys):
    main([str(module_file), "--entry", "clamp", "--verbose"])
    out = capsys.readouterr().out
    assert "Summaries: 2" in out
    assert "clamp: [r >= 0] => (x) -> r" in out


def test_arity_mismatch_is_an_input_error(tmp_path, capsys):
    path = tmp_path / "arity.yml"
    path.write_text(textwrap.dedent("""\
        functions:
          f:
            constraints:
              - call: g
                args: []
          g:
            vars: {x: Int}
            args: [x]
    """))
    assert main([str(path), "--entry", "f"]) == 3
    err = capsys.readouterr().err
    assert "f: constraint 0" in err
    assert "g takes 1 argument(s), called with 0" in err


def test_sort_mismatch_is_an_input_error(tmp_path, capsys):
    path = tmp_path / "sorts.yml"
    path.write_text(textwrap.dedent("""\
        functions:
          f:
            vars: {b: Bool}
            constraints:
              - call: g
                args: [b]
          g:
            vars: {x: Int}
            args: [x]
    """))
    assert main([str(path)]) == 3
    assert "g expects Int, got Bool" in capsys.readouterr().err


def test_undecodable_file(tmp_path, capsys):
    path = tmp_path / "binary.yml"
    path.write_bytes(b"\xff\xfe\x00garbage")
    assert main([str(path)]) == 3
    assert "cannot read" in capsys.readouterr().err


def test_directory_instead_of_file(tmp_path, capsys):
    assert main([str(tmp_path)]) == 3
    assert "cannot read" in capsys.readouterr().err


def test_unknown_logging_level(module_file, capsys):
    (module_file.parent / ".callflat.yml").write_text("logging:\n  level: loud\n")
    assert main([str(module_file)]) == 3
    assert "LOUD" in capsys.readouterr().err
