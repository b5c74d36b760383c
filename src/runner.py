# runner.py - Runs variants one after another, each on its own engine

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from aggregator import summarize
from config import *
from engine import SimulationEngine
from errors import ExperimentError
from models import (FiveTuple, FlowCounters, FlowDescriptor, FlowKey, NodeRole, Scenario,
                    VariantSummary)
from scenario import generate, generate_rtp

logger = logging.getLogger(__name__)


@dataclass
class VariantResult:
    scenario: Scenario
    summary: VariantSummary
    flows: List[Tuple[FlowDescriptor, Optional[FiveTuple]]] = field(default_factory=list)
    counters: Dict[FlowKey, FlowCounters] = field(default_factory=dict)


@dataclass
class Comparison:
    results: List[VariantResult] = field(default_factory=list)
    failures: List[Tuple[str, ExperimentError]] = field(default_factory=list)

    @property
    def summaries(self):
        return [r.summary for r in self.results]


def deploy(engine, scenario):
    """
    Builds the scenario on the engine: stations and AP on one Wi-Fi medium,
    AP and server on a wired link, then one sink and one source per flow.
    A scenario without an AP is two hosts on a single wired link.
    Returns node id -> address used to reach it.
    """
    placements = sorted(scenario.placements, key=lambda p: p.node_id)
    node_ids = engine.create_nodes(len(placements))
    for placement, node_id in zip(placements, node_ids):
        engine.set_mobility(node_id, placement.position, placement.mobility,
                            dict(placement.mobility_attributes))

    stations = [p.node_id for p in scenario.by_role(NodeRole.SOURCE)]
    relays = scenario.by_role(NodeRole.RELAY)
    server = scenario.by_role(NodeRole.SINK)[0].node_id

    addresses = {}
    if relays:
        ap = relays[0].node_id
        sta_devices = engine.install_link_layer(stations, {"medium": "wifi", "role": "sta", "ssid": SSID})
        ap_device = engine.install_link_layer([ap], {"medium": "wifi", "role": "ap", "ssid": SSID})
        csma_devices = engine.install_link_layer(
            [ap, server], {"medium": "csma", "DataRate": CSMA_DATA_RATE, "Delay": CSMA_DELAY})

        for node_id, address in zip(stations, engine.assign_addresses(sta_devices, WIFI_SUBNET)):
            addresses[node_id] = address
        engine.assign_addresses(ap_device, WIFI_SUBNET)
        csma_addresses = engine.assign_addresses(csma_devices, CSMA_SUBNET)
        addresses[ap] = csma_addresses[0]
        addresses[server] = csma_addresses[1]
    else:
        hosts = stations + [server]
        devices = engine.install_link_layer(
            hosts, {"medium": "csma", "DataRate": RTP_DATA_RATE, "Delay": RTP_DELAY})
        addresses.update(zip(hosts, engine.assign_addresses(devices, RTP_SUBNET)))

    engine.populate_routing_tables()

    for flow in scenario.descriptors:
        engine.install_traffic_sink(flow.destination, flow.port, flow.sink_start, flow.stop)
        engine.install_traffic_source(flow.source, addresses[flow.destination], flow.port,
                                      flow.packet_size, flow.interval_ms, flow.start, flow.stop,
                                      flow_key=flow.key, max_packets=flow.max_packets)
    return addresses


def run_scenario(scenario, engine_factory=SimulationEngine, seed=None, trace_dir=None,
                 trace_name=None):
    """Deploy, run and summarize one generated scenario on a fresh engine."""
    params = scenario.params
    name = params.variant

    engine = engine_factory(seed=seed)
    try:
        if scenario.policy is not None:
            for key, value in scenario.policy.attributes().items():
                engine.set_default(key, value)
        if trace_dir is not None:
            engine.enable_trace(os.path.join(trace_dir, trace_name or f"{name}.csv"))
        deploy(engine, scenario)
        logger.info("running %s for %.1fs with %d flows",
                    name, params.duration, len(scenario.descriptors))
        engine.run(params.duration)
        counters = engine.collect_flow_counters()
        flows = [(d, engine.find_flow(d.key)) for d in scenario.descriptors]
    except ExperimentError as exc:
        if exc.variant is None:
            exc.variant = name
        raise
    finally:
        engine.reset_defaults()
        engine.destroy()

    for descriptor, five_tuple in flows:
        logger.debug("flow %s (%s) %s", descriptor.key, descriptor.direction.value, five_tuple)

    summary = summarize(name, counters, params.duration)
    return VariantResult(scenario, summary, flows, counters)


def run_variant(params, engine_factory=SimulationEngine, seed=None, trace_dir=None):
    """Generate, deploy, run and summarize one variant."""
    scenario = generate(params)
    return run_scenario(scenario, engine_factory, seed=seed, trace_dir=trace_dir,
                        trace_name=f"voip-wifi-qos-{scenario.policy.name}.csv")


def run_rtp_baseline(engine_factory=SimulationEngine, seed=None, trace_dir=None,
                     max_packets=RTP_MAX_PACKETS):
    """Point-to-point reference run; failures are recorded like a variant's."""
    comparison = Comparison()
    print("\n=== RTP Simulation ===")
    try:
        scenario = generate_rtp(max_packets=max_packets)
        result = run_scenario(scenario, engine_factory, seed=seed, trace_dir=trace_dir,
                              trace_name="rtp-simulation.csv")
    except ExperimentError as exc:
        logger.error("rtp baseline failed: %s", exc)
        comparison.failures.append(("RTP", exc))
        return comparison
    comparison.results.append(result)
    return comparison


def run_comparison(params, variants=None, engine_factory=SimulationEngine,
                   seed=None, trace_dir=None):
    """
    Runs each named variant to completion before the next starts. A failing
    variant is recorded and skipped; the rest still run.
    """
    comparison = Comparison()
    for name in VARIANTS if variants is None else variants:
        print(f"\n=== {name} Simulation ===")
        try:
            result = run_variant(replace(params, variant=name), engine_factory,
                                 seed=seed, trace_dir=trace_dir)
        except ExperimentError as exc:
            logger.error("variant %s failed: %s", name, exc)
            comparison.failures.append((name, exc))
            continue
        comparison.results.append(result)
    return comparison
