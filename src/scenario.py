# scenario.py - Deterministic placement and traffic schedule for one variant

import numpy as np

from config import *
from errors import InvalidSchedule, InvalidVariant
from models import (FlowDescriptor, FlowDirection, FlowKey, NodePlacement,
                    NodeRole, Scenario, ScenarioParams, VariantPolicy)

_POLICIES = {
    "EDCA": VariantPolicy(
        name="EDCA",
        queue_max_packets=500,
        queue_max_delay_ms=100.0,
        rate_manager="ConstantRateWifiManager",
        overrides={"ConstantRateWifiManager::DataMode": "VhtMcs9",
                   "ConstantRateWifiManager::ControlMode": "VhtMcs0"},
    ),
    "WMM": VariantPolicy(
        name="WMM",
        queue_max_packets=800,
        queue_max_delay_ms=50.0,
        rate_manager="MinstrelHtWifiManager",
    ),
}


def list_variants():
    return list(_POLICIES)


def get_policy(name):
    """Return the preset for a variant name, InvalidVariant if unknown."""
    try:
        return _POLICIES[name]
    except KeyError:
        raise InvalidVariant(
            f"unknown variant {name!r}, expected one of {', '.join(_POLICIES)}",
            variant=name, parameter="variant") from None


def station_positions(n, radius):
    """Stations evenly spaced on a circle around the AP at the origin."""
    if n <= 0:
        return []
    angles = np.arange(n) * 2 * np.pi / n
    xs = radius * np.cos(angles)
    ys = radius * np.sin(angles)
    return [(float(x), float(y), 0.0) for x, y in zip(xs, ys)]


def _validate(params):
    checks = [
        ("stations", params.stations >= 0),
        ("radius", params.radius > 0),
        ("packet_size", params.packet_size > 0),
        ("interval_ms", params.interval_ms > 0),
        ("duration", params.duration > 0),
    ]
    for name, ok in checks:
        if not ok:
            raise InvalidSchedule(f"{name}={getattr(params, name)!r} is out of range",
                                  variant=params.variant, parameter=name)


def _check_window(params, label, start, stop):
    if not 0 <= start < stop <= params.duration:
        raise InvalidSchedule(
            f"{label}: start={start:g}s stop={stop:g}s outside [0, {params.duration:g}]",
            variant=params.variant, parameter=label)


def generate(params):
    """
    Builds placements, flow descriptors and the variant policy.
    Pure: identical params give identical output, and only the policy
    depends on the variant name.
    """
    policy = get_policy(params.variant)
    _validate(params)
    last_port = BASE_PORT + 2 * params.stations - 1
    if last_port > MAX_PORT:
        raise InvalidSchedule(f"{2 * params.stations} flows need ports up to {last_port}, "
                              f"above {MAX_PORT}", variant=params.variant, parameter="port")

    n = params.stations
    ap_id, server_id = n, n + 1
    walk = {"speed": WALK_SPEED, "change_time": WALK_CHANGE_TIME, "bounds": WALK_BOUNDS}

    placements = [NodePlacement(i, NodeRole.SOURCE, pos, "random-walk", walk)
                  for i, pos in enumerate(station_positions(n, params.radius))]
    placements.append(NodePlacement(ap_id, NodeRole.RELAY, AP_POSITION))
    placements.append(NodePlacement(server_id, NodeRole.SINK, SERVER_POSITION))

    descriptors = []
    port = BASE_PORT

    def add(source, destination, direction, interval, start, sink_start):
        nonlocal port
        label = f"{direction.value}[{len(descriptors)}]"
        _check_window(params, label, start, params.duration)
        descriptors.append(FlowDescriptor(
            key=FlowKey(len(descriptors)),
            source=source,
            destination=destination,
            direction=direction,
            packet_size=params.packet_size,
            interval_ms=interval,
            start=start,
            stop=params.duration,
            port=port,
            sink_start=sink_start,
        ))
        port += 1

    for i in range(n):
        add(i, server_id, FlowDirection.FORWARD,
            params.interval_ms + FORWARD_INTERVAL_STEP * i,
            FORWARD_START + FORWARD_START_STEP * i,
            FORWARD_SINK_START)

    for i in range(n):
        add(server_id, i, FlowDirection.RETURN,
            params.interval_ms + RETURN_INTERVAL_EXTRA,
            RETURN_START + RETURN_START_STEP * i,
            RETURN_SINK_START)

    return Scenario(params, tuple(placements), tuple(descriptors), policy)


def generate_rtp(max_packets=RTP_MAX_PACKETS, duration=RTP_DURATION):
    """
    Single-flow baseline: one voice-sized CBR stream between two hosts on
    a point-to-point link, with no Wi-Fi segment and no variant policy.
    """
    params = ScenarioParams(stations=1, radius=1.0, packet_size=RTP_PACKET_SIZE,
                            interval_ms=RTP_INTERVAL, duration=duration, variant="RTP")
    _validate(params)
    if max_packets < 0:
        raise InvalidSchedule(f"max_packets={max_packets!r} is out of range",
                              variant="RTP", parameter="max_packets")
    _check_window(params, "rtp[0]", RTP_CLIENT_START, duration)

    placements = (NodePlacement(0, NodeRole.SOURCE, RTP_POSITIONS[0]),
                  NodePlacement(1, NodeRole.SINK, RTP_POSITIONS[1]))
    flow = FlowDescriptor(
        key=FlowKey(0),
        source=0,
        destination=1,
        direction=FlowDirection.FORWARD,
        packet_size=RTP_PACKET_SIZE,
        interval_ms=RTP_INTERVAL,
        start=RTP_CLIENT_START,
        stop=duration,
        port=BASE_PORT,
        sink_start=RTP_SERVER_START,
        max_packets=max_packets,
    )
    return Scenario(params, placements, (flow,))
