"""Smoke tests for the experiment scripts."""

import matplotlib

matplotlib.use("Agg")

from experiment import run_method_comparison, run_target_count_example


def test_method_comparison_reports_identical_relations(capsys):
    run_method_comparison(min_distance=10.0, trials=2, seed=1)
    out = capsys.readouterr().out
    assert "DIFFERENT" not in out
    assert "[Thinning] precision" in out


def test_target_count_example_saves_plot(tmp_path, capsys):
    out_file = tmp_path / "target.png"
    run_target_count_example(target_points=10, seed=3, save_path=str(out_file))
    assert "[Target] kept 10 points" in capsys.readouterr().out
    assert out_file.exists()
