# engine.py - Packet-delivery backend: simpy schedules, the layers carry packets

import ipaddress
import logging
import math
import random
from collections import Counter, deque
from dataclasses import replace

import pandas as pd
import simpy

from config import *
from errors import EngineFailure
from layers.link import LinkLayer, MacQueue, make_rate_manager, parse_queue_size, parse_time
from layers.physical import PhysicalLayer
from layers.transport import UdpClient, UdpServer
from models import FiveTuple, FlowCounters, FlowKey, TimestampHeader

logger = logging.getLogger(__name__)


class ConstantPosition:
    def __init__(self, position):
        self._position = tuple(position)

    def position(self, now):
        return self._position


class RandomWalk2d:
    """Straight legs at constant speed, new heading every change_time, clipped to bounds."""

    def __init__(self, env, start, rng, speed=WALK_SPEED, change_time=WALK_CHANGE_TIME,
                 bounds=WALK_BOUNDS):
        self.env = env
        self.rng = rng
        self.speed = speed
        self.change_time = change_time
        self.bounds = bounds
        self.origin = tuple(start)
        self.t0 = env.now
        self.velocity = (0.0, 0.0)
        self._new_heading()
        self.process = env.process(self._walk())

    def _new_heading(self):
        heading = self.rng.uniform(0, 2 * math.pi)
        self.velocity = (self.speed * math.cos(heading), self.speed * math.sin(heading))

    def position(self, now):
        dt = now - self.t0
        xmin, xmax, ymin, ymax = self.bounds
        x = min(max(self.origin[0] + self.velocity[0] * dt, xmin), xmax)
        y = min(max(self.origin[1] + self.velocity[1] * dt, ymin), ymax)
        return (x, y, self.origin[2])

    def _walk(self):
        while True:
            yield self.env.timeout(self.change_time)
            self.origin = self.position(self.env.now)
            self.t0 = self.env.now
            self._new_heading()


class Node:
    def __init__(self, node_id):
        self.id = node_id
        self.devices = []
        self.mobility = None
        self.servers = {}   # port -> UdpServer
        self.routes = {}    # address -> (out device, peer device)

    @property
    def addresses(self):
        return {d.address for d in self.devices if d.address is not None}


class FlowMonitor:
    """
    Per-flow counters keyed by the flow key registered for a 5-tuple.
    Delay comes from the send timestamp in the TimestampHeader; delay and jitter
    sums are kept in milliseconds.
    """

    def __init__(self):
        self.classifier = {}     # FiveTuple -> FlowKey
        self.flows = {}          # FlowKey -> FlowCounters
        self.in_flight = {}      # packet uid -> (FlowKey, tx time), for loss timeouts
        self.last_delay = {}
        self.drop_reasons = {}   # FlowKey -> Counter

    def register(self, five_tuple, key=None):
        if key is None:
            # Engine-assigned keys are negative so they never clash with caller keys
            key = FlowKey(-(len(self.classifier) + 1))
        self.classifier[five_tuple] = key
        self.flows.setdefault(key, FlowCounters())
        self.drop_reasons.setdefault(key, Counter())
        return key

    def classify(self, packet):
        key = self.classifier.get(packet.five_tuple)
        if key is None:
            key = self.register(packet.five_tuple)
        return key

    def on_tx(self, packet, now):
        key = self.classify(packet)
        stats = self.flows[key]
        stats.tx_packets += 1
        stats.tx_bytes += packet.size + IP_UDP_HEADER_SIZE
        self.in_flight[packet.uid] = (key, now)

    def on_rx(self, packet, now):
        entry = self.in_flight.pop(packet.uid, None)
        if entry is None:
            return
        key = entry[0]
        stats = self.flows[key]
        header = TimestampHeader.unpack(packet.payload)
        delay = (now - header.timestamp_ns / 1e9) * 1e3
        stats.rx_packets += 1
        stats.rx_bytes += packet.size + IP_UDP_HEADER_SIZE
        stats.delay_sum += delay
        if key in self.last_delay:
            stats.jitter_sum += abs(delay - self.last_delay[key])
        self.last_delay[key] = delay

    def on_drop(self, packet, reason):
        entry = self.in_flight.pop(packet.uid, None)
        if entry is None:
            return
        key = entry[0]
        self.flows[key].lost_packets += 1
        self.drop_reasons[key][reason] += 1

    def check_for_lost_packets(self, now, timeout=LOST_PACKET_TIMEOUT):
        for uid, (key, sent) in list(self.in_flight.items()):
            if now - sent > timeout:
                del self.in_flight[uid]
                self.flows[key].lost_packets += 1
                self.drop_reasons[key]["timeout"] += 1


class SimulationEngine:
    """
    Adapter between the experiment and the packet-delivery model.
    Attribute defaults belong to this instance only; a fresh engine is
    built for every variant run.
    """

    def __init__(self, seed=None):
        self.rng = random.Random(seed)
        self.env = simpy.Environment()
        self.defaults = {}
        self.nodes = []
        self.monitor = FlowMonitor()
        self.clients = []
        self._wifi = None           # (medium, phy) shared by every Wi-Fi device
        self._allocators = {}       # network -> host iterator
        self._next_source_port = 49153
        self._trace_path = None
        self._trace_rows = []
        self._destroyed = False

    # === CONFIGURATION ===

    def set_default(self, key, value):
        self._check_alive()
        self.defaults[key] = str(value)

    def reset_defaults(self):
        self.defaults.clear()

    def enable_trace(self, path):
        self._trace_path = path

    # === TOPOLOGY ===

    def create_nodes(self, count):
        self._check_alive()
        start = len(self.nodes)
        self.nodes.extend(Node(start + i) for i in range(count))
        return list(range(start, start + count))

    def set_mobility(self, node_id, position, model="constant", attributes=None):
        node = self._node(node_id)
        attributes = attributes or {}
        if model == "constant":
            node.mobility = ConstantPosition(position)
        elif model == "random-walk":
            node.mobility = RandomWalk2d(
                self.env, position, random.Random(self.rng.random()),
                speed=attributes.get("speed", WALK_SPEED),
                change_time=attributes.get("change_time", WALK_CHANGE_TIME),
                bounds=attributes.get("bounds", WALK_BOUNDS))
        else:
            raise EngineFailure(f"unknown mobility model {model!r}", parameter="mobility")

    def install_link_layer(self, node_ids, medium_params):
        """
        medium_params["medium"] is "wifi" (all Wi-Fi devices share one medium)
        or "csma" (a new wired segment per call).
        """
        self._check_alive()
        medium = medium_params.get("medium")
        if medium == "wifi":
            if self._wifi is None:
                self._wifi = (simpy.Resource(self.env, capacity=1),
                              PhysicalLayer(VHT_RATES["VhtMcs9"] * 1e6, seed=self.rng.random()))
            channel, phy = self._wifi
            max_size = parse_queue_size(self.defaults.get("WifiMacQueue::MaxSize", "500p"))
            max_delay = parse_time(self.defaults.get("WifiMacQueue::MaxDelay", "500ms"))
            wireless = True
        elif medium == "csma":
            channel = simpy.Resource(self.env, capacity=1)
            phy = PhysicalLayer(float(medium_params.get("DataRate", CSMA_DATA_RATE)),
                                prop_delay=float(medium_params.get("Delay", CSMA_DELAY)),
                                error_model=False)
            max_size = CSMA_QUEUE_SIZE
            max_delay = None
            wireless = False
        else:
            raise EngineFailure(f"unknown medium {medium!r}", parameter="medium")

        devices = []
        for node_id in node_ids:
            node = self._node(node_id)
            queue = MacQueue(max_size, max_delay, on_drop=self._on_drop)
            rate_manager = make_rate_manager(self.defaults, seed=self.rng.random()) if wireless else None
            device = LinkLayer(self.env, node, channel, phy, queue, rate_manager,
                               wireless=wireless, on_receive=self._on_receive,
                               on_drop=self._on_drop)
            device.position = lambda n=node: n.mobility.position(self.env.now) if n.mobility else None
            device.ssid = medium_params.get("ssid") if wireless else None
            node.devices.append(device)
            devices.append(device)
        logger.debug("installed %d %s devices", len(devices), medium)
        return devices

    def assign_addresses(self, devices, subnet_base):
        try:
            network = ipaddress.ip_network(subnet_base)
        except ValueError as exc:
            raise EngineFailure(f"bad subnet {subnet_base!r}: {exc}", parameter="subnet") from exc
        hosts = self._allocators.setdefault(network, network.hosts())
        addresses = []
        for device in devices:
            try:
                address = next(hosts)
            except StopIteration:
                raise EngineFailure(f"subnet {network} exhausted", parameter="subnet") from None
            device.address = str(address)
            addresses.append(device.address)
        return addresses

    def populate_routing_tables(self):
        """Shortest-hop next hops between every pair of addressed nodes."""
        neighbours = {n.id: [] for n in self.nodes}
        for node in self.nodes:
            for dev in node.devices:
                for other in self.nodes:
                    if other is node:
                        continue
                    for peer in other.devices:
                        if peer.medium is dev.medium and _associated(dev, peer):
                            neighbours[node.id].append((dev, peer))

        for node in self.nodes:
            node.routes = {}
            first_hop = {node.id: None}
            pending = deque([node.id])
            while pending:
                current = pending.popleft()
                for dev, peer in neighbours[current]:
                    nxt = peer.node.id
                    if nxt in first_hop:
                        continue
                    first_hop[nxt] = first_hop[current] or (dev, peer)
                    pending.append(nxt)
            for target_id, hop in first_hop.items():
                if hop is None:
                    continue
                for address in self.nodes[target_id].addresses:
                    node.routes[address] = hop

    # === APPLICATIONS ===

    def install_traffic_sink(self, node_id, port, start, stop):
        node = self._node(node_id)
        _check_port(port)
        if port in node.servers:
            raise EngineFailure(f"port {port} already bound on node {node_id}", parameter="port")
        server = UdpServer(self.env, port, start, stop)
        node.servers[port] = server
        return server

    def install_traffic_source(self, node_id, remote_address, port, packet_size,
                               interval_ms, start, stop, flow_key=None, max_packets=0):
        node = self._node(node_id)
        _check_port(port)
        route = node.routes.get(remote_address)
        if route is None:
            raise EngineFailure(f"no route from node {node_id} to {remote_address}",
                                parameter="remote_address")
        five_tuple = FiveTuple(route[0].address, self._next_source_port, remote_address, port)
        self._next_source_port += 1
        self.monitor.register(five_tuple, flow_key)
        client = UdpClient(self.env, five_tuple, packet_size, interval_ms / 1e3,
                           start, stop, lambda p, n=node: self._send_from(n, p),
                           max_packets=max_packets)
        self.clients.append(client)
        return client

    # === EXECUTION ===

    def run(self, stop_time):
        self._check_alive()
        if stop_time <= self.env.now:
            raise EngineFailure(f"stop time {stop_time} is not after now={self.env.now}",
                                parameter="stop_time")
        self.env.run(until=stop_time)
        self.monitor.check_for_lost_packets(self.env.now)

        retries = sum(d.retries for n in self.nodes for d in n.devices)
        logger.debug("run finished at %.3fs, %d MAC retries", self.env.now, retries)
        for key, reasons in self.monitor.drop_reasons.items():
            if reasons:
                logger.debug("flow %s drops: %s", key, dict(reasons))
        for node in self.nodes:
            for port, server in node.servers.items():
                logger.debug("node %d port %d received %d datagrams (%d bytes)",
                             node.id, port, server.received, server.rx_bytes)

    def collect_flow_counters(self):
        return {key: replace(stats) for key, stats in self.monitor.flows.items()}

    def find_flow(self, key):
        for five_tuple, flow_key in self.monitor.classifier.items():
            if flow_key == key:
                return five_tuple
        return None

    def destroy(self):
        if self._destroyed:
            return
        if self._trace_path is not None:
            pd.DataFrame(self._trace_rows,
                         columns=["time", "event", "flow", "uid", "bytes", "reason"]
                         ).to_csv(self._trace_path, index=False)
            logger.info("packet trace written to %s", self._trace_path)
        self.nodes = []
        self.clients = []
        self._trace_rows = []
        self._destroyed = True

    # === PACKET PATH ===

    def _send_from(self, node, packet):
        self.monitor.on_tx(packet, self.env.now)
        self._trace("tx", packet)
        self._forward(node, packet)

    def _forward(self, node, packet):
        destination = packet.five_tuple.destination_address
        if destination in node.addresses:
            self._deliver(node, packet)
            return
        route = node.routes.get(destination)
        if route is None:
            self._on_drop(packet, "no-route")
            return
        out_device, peer = route
        out_device.send(packet, peer)

    def _on_receive(self, packet, device):
        self._forward(device.node, packet)

    def _deliver(self, node, packet):
        self.monitor.on_rx(packet, self.env.now)
        self._trace("rx", packet)
        server = node.servers.get(packet.five_tuple.destination_port)
        if server is not None:
            server.receive(packet)

    def _on_drop(self, packet, reason):
        self.monitor.on_drop(packet, reason)
        self._trace("drop", packet, reason)

    def _trace(self, event, packet, reason=""):
        if self._trace_path is None:
            return
        key = self.monitor.classifier.get(packet.five_tuple)
        self._trace_rows.append((self.env.now, event, str(key), packet.uid, packet.size, reason))

    def _node(self, node_id):
        self._check_alive()
        if not 0 <= node_id < len(self.nodes):
            raise EngineFailure(f"unknown node {node_id}", parameter="node")
        return self.nodes[node_id]

    def _check_alive(self):
        if self._destroyed:
            raise EngineFailure("engine already destroyed")


def _associated(dev, peer):
    """Wi-Fi devices only talk within one SSID; wired segments have none."""
    return dev.ssid == peer.ssid


def _check_port(port):
    if not 0 < port <= MAX_PORT:
        raise EngineFailure(f"port {port} outside 1-{MAX_PORT}", parameter="port")
