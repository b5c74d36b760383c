# report.py - Text and CSV output for a variant comparison

import pandas as pd

from aggregator import best_variants

COLUMNS = ["variant", "throughput_mbps", "delay_ms", "jitter_ms", "loss_rate",
           "tx_packets", "rx_packets", "lost_packets", "flows"]


def format_summary(summary):
    """Per-variant block, one metric per line."""
    return "\n".join([
        f"=== QoS Type: {summary.variant} ===",
        f"  Average Throughput: {summary.throughput_mbps:.2f} Mbps",
        f"  Average Delay: {summary.delay_ms:.3f} ms",
        f"  Average Jitter: {summary.jitter_ms:.3f} ms",
        f"  Packet Loss Rate: {summary.loss_rate:.2f}%",
        f"  Total Tx Packets: {summary.tx_packets}",
        f"  Total Rx Packets: {summary.rx_packets}",
        f"  Total Lost Packets: {summary.lost_packets}",
    ])


def format_flows(result):
    lines = [f"Flow Information ({result.summary.variant}):"]
    for descriptor, five_tuple in result.flows:
        lines.append(f"Flow {descriptor.key} ({five_tuple if five_tuple else '?'})")
    return "\n".join(lines)


def summaries_frame(summaries):
    return pd.DataFrame([s.as_dict() for s in summaries], columns=COLUMNS)


def format_table(summaries):
    df = summaries_frame(summaries)
    if df.empty:
        return "(no variants completed)"
    return df.to_string(index=False, formatters={
        "throughput_mbps": "{:.2f}".format,
        "delay_ms": "{:.3f}".format,
        "jitter_ms": "{:.3f}".format,
        "loss_rate": "{:.2f}".format,
    })


def print_report(comparison):
    for result in comparison.results:
        print(format_flows(result))
        print(format_summary(result.summary))

    print("\n=== Comparison ===")
    print(format_table(comparison.summaries))

    best = best_variants(comparison.summaries)
    if len(comparison.summaries) > 1 and best:
        print("Best: " + ", ".join(f"{metric}={name}" for metric, name in best.items()))

    for name, error in comparison.failures:
        print(f"FAILED {name}: {error}")


def write_csv(summaries, path):
    summaries_frame(summaries).to_csv(path, index=False)


FLOW_COLUMNS = ["variant", "flow", "direction", "source", "destination", "tx_packets",
                "rx_packets", "lost_packets", "tx_bytes", "rx_bytes", "delay_sum_ms",
                "jitter_sum_ms"]


def flows_frame(results):
    """One row per flow and run, raw counters as collected."""
    rows = []
    for result in results:
        for descriptor, five_tuple in result.flows:
            c = result.counters.get(descriptor.key)
            if c is None:
                continue
            rows.append({
                "variant": result.summary.variant,
                "flow": descriptor.key.value,
                "direction": descriptor.direction.value,
                "source": f"{five_tuple.source_address}:{five_tuple.source_port}" if five_tuple else "",
                "destination": (f"{five_tuple.destination_address}:{five_tuple.destination_port}"
                                if five_tuple else ""),
                "tx_packets": c.tx_packets,
                "rx_packets": c.rx_packets,
                "lost_packets": c.lost_packets,
                "tx_bytes": c.tx_bytes,
                "rx_bytes": c.rx_bytes,
                "delay_sum_ms": c.delay_sum,
                "jitter_sum_ms": c.jitter_sum,
            })
    return pd.DataFrame(rows, columns=FLOW_COLUMNS)


def write_flow_stats(results, path):
    flows_frame(results).to_csv(path, index=False)
