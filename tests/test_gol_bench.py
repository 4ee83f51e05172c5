import io

from gol_bench import NullSink, main, run_benchmark
from gol_color import CLEAR_CODE, RESET_FONT_CODE


def test_null_sink_counts():
    sink = NullSink()
    assert sink.write(b"abc") == 3
    assert sink.write(memoryview(b"de")) == 2
    sink.flush()
    assert (sink.writes, sink.bytes_written) == (2, 5)


def test_line_timing_report():
    out = io.StringIO()
    sink = run_benchmark(5, height=4, width=6, line_timing=True, seed=0, out=out)

    frame = 4 * 7 * 6
    per_gen = len(CLEAR_CODE) + frame + len(RESET_FONT_CODE) + len("gen: 1\n")
    assert sink.writes == 5 * 4
    assert sink.bytes_written == 5 * per_gen

    report = out.getvalue()
    assert "Per-Frame Component Breakdown" in report
    for name in ("encode()", "emit", "step()", "TOTAL"):
        assert name in report
    assert "Frames over budget" in report


def test_profile_report_and_dump(tmp_path):
    out = io.StringIO()
    dump = tmp_path / "prof.out"
    run_benchmark(3, height=5, width=5, monochrome=True, seed=1, dump_path=str(dump), out=out)
    report = out.getvalue()
    assert "Wall time" in report
    assert "By Self-Time" in report
    assert dump.exists()


def test_main_runs(capsys):
    main(["-n", "2", "--height", "3", "--width", "3", "--line-timing", "--seed", "0"])
    assert "Grid: 3x3" in capsys.readouterr().out
