import pandas as pd
import pytest

from main import main, run_experiment
from plotter import plot_variant_comparison


def test_cli_runs_both_variants(tmp_path, capsys):
    out = tmp_path / "summary.csv"
    traces = tmp_path / "traces"
    code = main(["--stations", "1", "--duration", "15", "--seed", "4",
                 "--output", str(out), "--trace-dir", str(traces)])

    assert code == 0
    df = pd.read_csv(out)
    assert list(df["variant"]) == ["EDCA", "WMM"]
    assert (df["tx_packets"] > 0).all()
    assert (traces / "voip-wifi-qos-EDCA.csv").exists()
    assert (traces / "voip-wifi-qos-WMM.csv").exists()
    assert "=== Comparison ===" in capsys.readouterr().out


def test_cli_reports_failed_variant(capsys):
    comparison = run_experiment(["--stations", "4", "--duration", "12", "--variants", "EDCA"])
    assert comparison.results == []
    assert comparison.failures[0][0] == "EDCA"
    assert "FAILED EDCA" in capsys.readouterr().out


def test_cli_rejects_unknown_variant():
    with pytest.raises(SystemExit):
        main(["--variants", "HCCA"])


def test_plot_from_cli_output(tmp_path):
    csv = tmp_path / "summary.csv"
    pd.DataFrame([
        {"variant": "EDCA", "throughput_mbps": 0.1, "delay_ms": 3.0, "jitter_ms": 0.4, "loss_rate": 1.0},
        {"variant": "WMM", "throughput_mbps": 0.12, "delay_ms": 2.0, "jitter_ms": 0.5, "loss_rate": 0.5},
        {"variant": "WMM", "throughput_mbps": 0.11, "delay_ms": 2.5, "jitter_ms": 0.5, "loss_rate": 0.7},
    ]).to_csv(csv, index=False)

    png = tmp_path / "cmp.png"
    assert plot_variant_comparison(str(csv), str(png)) == str(png)
    assert png.stat().st_size > 0
    assert plot_variant_comparison(str(tmp_path / "missing.csv")) is None


def test_cli_rtp_baseline_writes_flow_stats(tmp_path, capsys):
    stats = tmp_path / "flows.csv"
    summary = tmp_path / "summary.csv"
    code = main(["--scenario", "rtp", "--flow-stats", str(stats), "--output", str(summary)])

    assert code == 0
    flows = pd.read_csv(stats)
    assert len(flows) == 1
    row = flows.iloc[0]
    assert row["variant"] == "RTP"
    assert row["tx_packets"] == 400
    assert row["rx_packets"] == 400
    assert row["destination"] == "10.1.1.2:5000"
    assert list(pd.read_csv(summary)["variant"]) == ["RTP"]
    assert "=== RTP Simulation ===" in capsys.readouterr().out


def test_cli_rtp_packet_cap(tmp_path):
    stats = tmp_path / "flows.csv"
    main(["--scenario", "rtp", "--max-packets", "50", "--flow-stats", str(stats)])
    assert pd.read_csv(stats)["tx_packets"].tolist() == [50]


def test_cli_flow_stats_for_variants(tmp_path):
    stats = tmp_path / "flows.csv"
    main(["--stations", "1", "--duration", "15", "--flow-stats", str(stats)])
    flows = pd.read_csv(stats)
    assert list(flows["variant"]) == ["EDCA", "EDCA", "WMM", "WMM"]
    assert list(flows["direction"]) == ["forward", "return"] * 2
