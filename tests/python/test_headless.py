import csv
import json

from genesis.app.headless import run_headless


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def test_headless_log_header_and_rows(tmp_path):
    log_path = tmp_path / "run.csv"
    run_headless(steps=3, seed=1, log_path=log_path, deterministic_log=True)
    rows = _read_csv(log_path)
    assert len(rows) == 4
    assert rows[0] == [
        "tick",
        "time",
        "population",
        "births",
        "deaths",
        "avg_energy",
        "avg_consciousness",
        "max_consciousness",
        "max_generation",
        "species",
        "timeline_events",
        "tick_ms",
    ]
    header = rows[0]
    idx = {name: i for i, name in enumerate(header)}
    assert [row[idx["tick"]] for row in rows[1:]] == ["0", "1", "2"]
    assert all(row[idx["tick_ms"]] == "0.000" for row in rows[1:])
    assert rows[1][idx["population"]] == "2"


def test_deterministic_logs_match_for_same_seed(tmp_path):
    first = tmp_path / "a.csv"
    second = tmp_path / "b.csv"
    run_headless(steps=20, seed=7, log_path=first, deterministic_log=True)
    run_headless(steps=20, seed=7, log_path=second, deterministic_log=True)
    assert first.read_text() == second.read_text()


def test_headless_summary_output(tmp_path):
    summary_path = tmp_path / "summary.json"
    run_headless(steps=4, seed=3, log_path=None, deterministic_log=True, summary_path=summary_path)
    payload = json.loads(summary_path.read_text())
    assert payload["steps"] == 4
    assert payload["seed"] == 3
    assert payload["final_population"] == 2
    assert payload["deterministic_log"] is True
    assert payload["tick_ms"]["max"] == 0.0
    assert "population" in payload
    assert "max_consciousness" in payload


def test_headless_reads_yaml_config(tmp_path):
    config_path = tmp_path / "genesis.yaml"
    config_path.write_text("seed: 9\nworld:\n  food_count: 5\n")
    summary_path = tmp_path / "summary.json"

    simulation = run_headless(steps=1, seed=None, log_path=None, summary_path=summary_path, config_path=config_path)

    assert json.loads(summary_path.read_text())["seed"] == 9
    assert len(simulation.state.resources) == 5 + 15 + 10
