from dataclasses import replace

import pytest

from config import RTP_DATA_RATE, RTP_DELAY
from errors import EngineFailure, InvalidSchedule
from models import FlowCounters
from runner import run_comparison, run_rtp_baseline, run_variant


class FakeEngine:
    """Records calls; every installed flow reports the same counters."""

    instances = []
    fail_on = set()

    def __init__(self, seed=None):
        self.seed = seed
        self.defaults = {}
        self.calls = []
        self.sources = []
        self.sinks = []
        self.caps = []
        self.media = []
        self.destroyed = False
        self.defaults_at_run = None
        FakeEngine.instances.append(self)

    def set_default(self, key, value):
        self.defaults[key] = value

    def reset_defaults(self):
        self.calls.append("reset_defaults")
        self.defaults = {}

    def enable_trace(self, path):
        self.calls.append(("trace", path))

    def create_nodes(self, count):
        self.nodes = list(range(count))
        return self.nodes

    def set_mobility(self, node_id, position, model="constant", attributes=None):
        pass

    def install_link_layer(self, node_ids, medium_params):
        self.media.append((list(node_ids), dict(medium_params)))
        return [(n, medium_params["medium"]) for n in node_ids]

    def assign_addresses(self, devices, subnet_base):
        prefix = subnet_base.rsplit(".", 1)[0]
        return [f"{prefix}.{i + 1}" for i, _ in enumerate(devices)]

    def populate_routing_tables(self):
        pass

    def install_traffic_sink(self, node_id, port, start, stop):
        self.sinks.append((node_id, port))

    def install_traffic_source(self, node_id, remote_address, port, packet_size,
                               interval_ms, start, stop, flow_key=None, max_packets=0):
        self.sources.append((node_id, remote_address, port, flow_key))
        self.caps.append(max_packets)

    def run(self, stop_time):
        self.defaults_at_run = dict(self.defaults)
        self.calls.append(("run", stop_time))
        policy = self.defaults.get("WifiHelper::RemoteStationManager")
        if policy in FakeEngine.fail_on:
            raise EngineFailure("device install failed", parameter="wifi")

    def collect_flow_counters(self):
        return {key: FlowCounters(tx_packets=100, rx_packets=90, lost_packets=10,
                                  rx_bytes=90000, delay_sum=900.0, jitter_sum=89.0)
                for _, _, _, key in self.sources}

    def find_flow(self, key):
        return None

    def destroy(self):
        self.calls.append("destroy")
        self.destroyed = True


@pytest.fixture(autouse=True)
def _reset_fake():
    FakeEngine.instances = []
    FakeEngine.fail_on = set()


def test_run_variant_scopes_policy_to_engine(params):
    result = run_variant(params, FakeEngine, seed=3)
    engine, = FakeEngine.instances

    assert engine.seed == 3
    assert engine.defaults_at_run["WifiMacQueue::MaxSize"] == "500p"
    assert engine.calls[-2:] == ["reset_defaults", "destroy"]
    assert result.summary.variant == "EDCA"
    assert result.summary.flows == 6
    assert result.summary.loss_rate == pytest.approx(10.0)
    assert result.summary.delay_ms == pytest.approx(10.0)


def test_sources_target_the_right_addresses(params):
    run_variant(params, FakeEngine)
    engine, = FakeEngine.instances

    # server (node 4) is the second CSMA device, stations are 10.1.1.x
    forward = [s for s in engine.sources if s[0] != 4]
    back = [s for s in engine.sources if s[0] == 4]
    assert {s[1] for s in forward} == {"10.1.2.2"}
    assert [s[1] for s in back] == ["10.1.1.1", "10.1.1.2", "10.1.1.3"]
    assert len({port for _, port in engine.sinks}) == 6


def test_variants_run_in_order_on_fresh_engines(params):
    comparison = run_comparison(params, ["WMM", "EDCA"], FakeEngine)

    assert [s.variant for s in comparison.summaries] == ["WMM", "EDCA"]
    first, second = FakeEngine.instances
    assert first.destroyed and second.destroyed
    assert first.defaults_at_run["WifiMacQueue::MaxSize"] == "800p"
    assert second.defaults_at_run["WifiMacQueue::MaxSize"] == "500p"
    assert "MinstrelHtWifiManager" not in second.defaults_at_run.values()


def test_engine_failure_aborts_only_that_variant(params):
    FakeEngine.fail_on = {"ConstantRateWifiManager"}
    comparison = run_comparison(params, ["EDCA", "WMM"], FakeEngine)

    assert [s.variant for s in comparison.summaries] == ["WMM"]
    (name, error), = comparison.failures
    assert name == "EDCA"
    assert isinstance(error, EngineFailure)
    assert error.variant == "EDCA"
    assert error.parameter == "wifi"
    failed = FakeEngine.instances[0]
    assert failed.calls[-2:] == ["reset_defaults", "destroy"]


def test_invalid_variant_is_reported_and_skipped(params):
    comparison = run_comparison(params, ["EDCA", "DCF", "WMM"], FakeEngine)
    assert [s.variant for s in comparison.summaries] == ["EDCA", "WMM"]
    assert comparison.failures[0][0] == "DCF"
    assert len(FakeEngine.instances) == 2


def test_invalid_schedule_never_reaches_engine(params):
    with pytest.raises(InvalidSchedule):
        run_variant(replace(params, duration=8.0), FakeEngine)
    assert FakeEngine.instances == []


def test_zero_stations_give_zero_summary(params):
    result = run_variant(replace(params, stations=0), FakeEngine)
    summary = result.summary
    assert summary.flows == 0
    assert (summary.throughput_mbps, summary.delay_ms, summary.jitter_ms, summary.loss_rate) == (0, 0, 0, 0)


def test_trace_path_per_variant(params, tmp_path):
    run_variant(params, FakeEngine, trace_dir=str(tmp_path))
    engine, = FakeEngine.instances
    assert ("trace", str(tmp_path / "voip-wifi-qos-EDCA.csv")) in engine.calls


def test_empty_variant_list_runs_nothing(params, capsys):
    comparison = run_comparison(params, [], FakeEngine)
    assert comparison.results == []
    assert comparison.failures == []
    assert FakeEngine.instances == []
    assert "Simulation ===" not in capsys.readouterr().out


def test_default_variant_list_runs_both(params):
    comparison = run_comparison(params, None, FakeEngine)
    assert [s.variant for s in comparison.summaries] == ["EDCA", "WMM"]


def test_wifi_flows_are_uncapped(params):
    run_variant(params, FakeEngine)
    engine, = FakeEngine.instances
    assert engine.caps == [0] * 6


def test_rtp_baseline_is_one_wired_link(tmp_path):
    comparison = run_rtp_baseline(FakeEngine, seed=2, trace_dir=str(tmp_path), max_packets=40)
    engine, = FakeEngine.instances

    (nodes, medium), = engine.media
    assert nodes == [0, 1]
    assert medium == {"medium": "csma", "DataRate": RTP_DATA_RATE, "Delay": RTP_DELAY}
    assert engine.defaults_at_run == {}
    assert engine.sources == [(0, "10.1.1.2", 5000, engine.sources[0][3])]
    assert engine.caps == [40]
    assert engine.sinks == [(1, 5000)]
    assert ("trace", str(tmp_path / "rtp-simulation.csv")) in engine.calls
    assert engine.calls[-2:] == ["reset_defaults", "destroy"]

    result, = comparison.results
    assert result.summary.variant == "RTP"
    assert result.summary.flows == 1
    assert set(result.counters) == {result.flows[0][0].key}


def test_rtp_baseline_failure_is_recorded():
    comparison = run_rtp_baseline(FakeEngine, max_packets=-1)
    assert comparison.results == []
    (name, error), = comparison.failures
    assert name == "RTP"
    assert isinstance(error, InvalidSchedule)
    assert error.parameter == "max_packets"
    assert FakeEngine.instances == []
