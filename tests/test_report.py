import pandas as pd

from errors import EngineFailure
from aggregator import summarize
from models import FiveTuple, FlowDescriptor, FlowDirection, FlowKey, VariantSummary
from report import flows_frame, format_summary, format_table, print_report, write_csv
from runner import Comparison, VariantResult


def _summaries(sample_counters):
    edca = summarize("EDCA", {FlowKey(0): sample_counters}, 100.0)
    wmm = VariantSummary("WMM", 0.05, 4.0, 0.5, 7.5, 200, 185, 15, 1)
    return [edca, wmm]


def test_format_summary_block(sample_counters):
    text = format_summary(_summaries(sample_counters)[0])
    assert text.splitlines()[0] == "=== QoS Type: EDCA ==="
    assert "Average Throughput: 0.08 Mbps" in text
    assert "Average Delay: 10.000 ms" in text
    assert "Packet Loss Rate: 5.00%" in text
    assert "Total Lost Packets: 50" in text


def test_format_table_lists_every_variant(sample_counters):
    table = format_table(_summaries(sample_counters))
    lines = table.splitlines()
    assert "throughput_mbps" in lines[0]
    assert lines[1].split()[0] == "EDCA"
    assert lines[2].split()[0] == "WMM"
    assert format_table([]) == "(no variants completed)"


def test_write_csv(tmp_path, sample_counters):
    path = tmp_path / "summary.csv"
    write_csv(_summaries(sample_counters), path)
    df = pd.read_csv(path)
    assert list(df["variant"]) == ["EDCA", "WMM"]
    assert df.loc[0, "loss_rate"] == 5.0


def test_print_report_names_winners_and_failures(capsys, sample_counters):
    comparison = Comparison()
    comparison.failures.append(("HCCA", EngineFailure("boom", variant="HCCA")))
    for summary in _summaries(sample_counters):
        comparison.results.append(type("Result", (), {"summary": summary, "flows": []})())

    print_report(comparison)
    out = capsys.readouterr().out
    assert "=== QoS Type: WMM ===" in out
    assert "throughput_mbps=EDCA" in out
    assert "delay_ms=WMM" in out
    assert "FAILED HCCA: boom (variant=HCCA)" in out


def test_flows_frame_one_row_per_flow(sample_counters):
    forward = FlowDescriptor(FlowKey(0), 0, 2, FlowDirection.FORWARD, 1000, 50.0,
                             5.0, 100.0, 5000, 1.0)
    missing = FlowDescriptor(FlowKey(1), 2, 0, FlowDirection.RETURN, 1000, 70.0,
                             10.0, 100.0, 5001, 2.0)
    result = VariantResult(
        scenario=None,
        summary=summarize("EDCA", {FlowKey(0): sample_counters}, 100.0),
        flows=[(forward, FiveTuple("10.1.1.1", 49153, "10.1.2.2", 5000)), (missing, None)],
        counters={FlowKey(0): sample_counters},
    )

    df = flows_frame([result])
    assert len(df) == 1
    assert df.loc[0, "source"] == "10.1.1.1:49153"
    assert df.loc[0, "tx_packets"] == sample_counters.tx_packets
    assert flows_frame([]).empty
