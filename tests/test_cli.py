import io
import json

import pytest

from engine.position import STARTING_FEN
from interface.cli import EXIT_USAGE, build_parser, run

BACK_RANK = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"
STALEMATE = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "cache.json"


def run_cli(*argv: str, stdin: str = "") -> tuple[int, str]:
    out = io.StringIO()
    code = run(list(argv), stdin=io.StringIO(stdin), stdout=out)
    return code, out.getvalue()


def test_defaults() -> None:
    args = build_parser().parse_args([])
    assert args.fen is None
    assert args.depth == 4
    assert not args.debug and not args.train


def test_prints_board_and_best_move(cache_path) -> None:
    code, out = run_cli("--fen", BACK_RANK, "--depth", "2", "--cache", str(cache_path))
    assert code == 0
    assert "R . . . . . K ." in out
    assert "bestmove a1a8 (Ra8#)" in out
    assert "nodes" not in out
    assert not cache_path.exists()


def test_debug_prints_diagnostics(cache_path) -> None:
    code, out = run_cli("--fen", BACK_RANK, "--depth", "2", "--cache", str(cache_path), "--debug")
    assert code == 0
    assert "evaluation 49999" in out
    assert "pv a1a8" in out
    assert "nodes " in out


def test_no_legal_moves(cache_path) -> None:
    code, out = run_cli("--fen", STALEMATE, "--depth", "1", "--cache", str(cache_path))
    assert code == 0
    assert "bestmove (none)" in out


def test_fen_is_prompted_for(cache_path) -> None:
    code, out = run_cli("--depth", "1", "--cache", str(cache_path), stdin=BACK_RANK + "\n")
    assert code == 0
    assert out.startswith("Enter FEN value: ")
    assert "bestmove a1a8" in out


def test_empty_prompt_means_start_position(cache_path) -> None:
    code, out = run_cli("--depth", "1", "--cache", str(cache_path), stdin="\n")
    assert code == 0
    assert "r n b q k b n r" in out
    assert "bestmove " in out


def test_train_requires_debug(cache_path) -> None:
    code, out = run_cli("--fen", BACK_RANK, "--depth", "1", "--cache", str(cache_path), "--train")
    assert code == 0
    assert "cached" not in out
    assert not cache_path.exists()


def test_debug_and_train_record_the_result(cache_path) -> None:
    code, out = run_cli(
        "--fen", BACK_RANK, "--depth", "2", "--cache", str(cache_path), "--debug", "--train"
    )
    assert code == 0
    assert f"cached 1 positions in {cache_path}" in out

    entries = json.loads(cache_path.read_text(encoding="utf-8"))["entries"]
    (entry,) = entries.values()
    assert entry["move"] == "a1a8"
    assert entry["evaluation"] == 49999

    # The next plain run replays the cached result at the root.
    code, out = run_cli("--fen", BACK_RANK, "--depth", "3", "--cache", str(cache_path), "--debug")
    assert code == 0
    assert "bestmove a1a8" in out
    assert "nodes 3" in out


@pytest.mark.parametrize(
    "argv",
    [
        ["--fen", "not a fen"],
        ["--fen", STARTING_FEN, "--depth", "0"],
    ],
)
def test_engine_errors_exit_with_usage_code(cache_path, capsys, argv) -> None:
    code, _ = run_cli(*argv, "--cache", str(cache_path))
    assert code == EXIT_USAGE
    assert capsys.readouterr().err.startswith("error: ")


def test_corrupt_cache_is_reported(cache_path, capsys) -> None:
    cache_path.write_text("{}", encoding="utf-8")
    code, _ = run_cli("--fen", BACK_RANK, "--depth", "1", "--cache", str(cache_path))
    assert code == EXIT_USAGE
    assert "not a position cache" in capsys.readouterr().err
