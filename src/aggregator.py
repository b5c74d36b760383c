# aggregator.py - Reduces per-flow counters to one summary per variant

from dataclasses import dataclass

from models import VariantSummary


@dataclass(frozen=True)
class FlowMetrics:
    throughput_mbps: float
    delay_ms: float
    jitter_ms: float


def flow_metrics(counters, sim_duration):
    """Throughput over the whole run, mean delay and mean jitter of one flow."""
    throughput = counters.rx_bytes * 8.0 / (sim_duration * 1e6) if sim_duration > 0 else 0.0
    delay = counters.delay_sum / counters.rx_packets if counters.rx_packets > 0 else 0.0
    jitter = counters.jitter_sum / (counters.rx_packets - 1) if counters.rx_packets > 1 else 0.0
    return FlowMetrics(throughput, delay, jitter)


def summarize(variant_name, counters, sim_duration):
    """
    Every flow weighs the same in the throughput/delay/jitter means,
    regardless of how many packets it carried. An empty flow set yields
    an all-zero summary.
    """
    throughput = delay = jitter = 0.0
    tx = rx = lost = 0

    for key in counters:
        c = counters[key]
        m = flow_metrics(c, sim_duration)
        throughput += m.throughput_mbps
        delay += m.delay_ms
        jitter += m.jitter_ms
        tx += c.tx_packets
        rx += c.rx_packets
        lost += c.lost_packets

    flows = len(counters)
    if flows:
        throughput /= flows
        delay /= flows
        jitter /= flows

    loss_rate = 100.0 * lost / tx if tx > 0 else 0.0

    return VariantSummary(
        variant=variant_name,
        throughput_mbps=throughput,
        delay_ms=delay,
        jitter_ms=jitter,
        loss_rate=loss_rate,
        tx_packets=tx,
        rx_packets=rx,
        lost_packets=lost,
        flows=flows,
    )


# Metric -> True when larger is better
_DIRECTIONS = {
    "throughput_mbps": True,
    "delay_ms": False,
    "jitter_ms": False,
    "loss_rate": False,
}


def best_variants(summaries):
    """Winning variant name per metric; ties go to the earlier variant."""
    best = {}
    for metric, higher in _DIRECTIONS.items():
        winner = None
        for s in summaries:
            value = getattr(s, metric)
            if winner is None:
                winner = s
                continue
            current = getattr(winner, metric)
            if (value > current) if higher else (value < current):
                winner = s
        if winner is not None:
            best[metric] = winner.variant
    return best
