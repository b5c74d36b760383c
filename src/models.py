import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Tuple


class NodeRole(Enum):
    SOURCE = "station"
    SINK = "server"
    RELAY = "access-point"


class FlowDirection(Enum):
    FORWARD = "forward"
    RETURN = "return"


@dataclass(frozen=True)
class FlowKey:
    """Opaque flow identity handed from the scenario to the counters."""
    value: int

    def __str__(self):
        return str(self.value)


@dataclass(frozen=True)
class NodePlacement:
    node_id: int
    role: NodeRole
    position: Tuple[float, float, float]
    mobility: str = "constant"
    mobility_attributes: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class FlowDescriptor:
    key: FlowKey
    source: int
    destination: int
    direction: FlowDirection
    packet_size: int
    interval_ms: float
    start: float
    stop: float
    port: int
    sink_start: float
    max_packets: int = 0    # 0: no cap


@dataclass(frozen=True)
class VariantPolicy:
    """Named MAC configuration applied to one engine for one run."""
    name: str
    queue_max_packets: int
    queue_max_delay_ms: float
    rate_manager: str
    overrides: Mapping[str, str] = field(default_factory=dict)

    def attributes(self):
        attrs = {
            "WifiMacQueue::MaxSize": f"{self.queue_max_packets}p",
            "WifiMacQueue::MaxDelay": f"{self.queue_max_delay_ms:g}ms",
            "WifiHelper::RemoteStationManager": self.rate_manager,
        }
        attrs.update(self.overrides)
        return attrs


@dataclass(frozen=True)
class ScenarioParams:
    stations: int
    radius: float
    packet_size: int
    interval_ms: float
    duration: float
    variant: str


@dataclass(frozen=True)
class Scenario:
    params: ScenarioParams
    placements: Tuple[NodePlacement, ...]
    descriptors: Tuple[FlowDescriptor, ...]
    policy: Optional[VariantPolicy] = None    # None: no Wi-Fi segment

    def by_role(self, role):
        return [p for p in self.placements if p.role == role]


@dataclass
class FlowCounters:
    """Raw per-flow counters; delay and jitter sums in ms."""
    tx_packets: int = 0
    rx_packets: int = 0
    lost_packets: int = 0
    tx_bytes: int = 0
    rx_bytes: int = 0
    delay_sum: float = 0.0
    jitter_sum: float = 0.0


@dataclass(frozen=True)
class VariantSummary:
    variant: str
    throughput_mbps: float
    delay_ms: float
    jitter_ms: float
    loss_rate: float
    tx_packets: int
    rx_packets: int
    lost_packets: int
    flows: int = 0

    def as_dict(self):
        return {
            "variant": self.variant,
            "throughput_mbps": self.throughput_mbps,
            "delay_ms": self.delay_ms,
            "jitter_ms": self.jitter_ms,
            "loss_rate": self.loss_rate,
            "tx_packets": self.tx_packets,
            "rx_packets": self.rx_packets,
            "lost_packets": self.lost_packets,
            "flows": self.flows,
        }


@dataclass(frozen=True)
class FiveTuple:
    source_address: str
    source_port: int
    destination_address: str
    destination_port: int
    protocol: int = 17

    def __str__(self):
        return (f"{self.source_address}:{self.source_port} -> "
                f"{self.destination_address}:{self.destination_port}")


class TimestampHeader:
    """Sequence/timestamp header carried by every generated datagram"""
    size = 12

    def __init__(self, seq_num, timestamp_ns):
        self.seq_num = seq_num
        self.timestamp_ns = timestamp_ns

    def pack(self, payload_size):
        # 4 byte seq + 8 byte tx timestamp, zero padded to the payload size
        header = struct.pack('!IQ', self.seq_num, self.timestamp_ns)
        return header + b'\x00' * max(0, payload_size - self.size)

    @classmethod
    def unpack(cls, data):
        seq_num, timestamp_ns = struct.unpack('!IQ', data[:cls.size])
        return cls(seq_num, timestamp_ns)


class Packet:
    """Network-layer datagram moving through the engine"""
    _counter = 0

    def __init__(self, five_tuple, payload):
        Packet._counter += 1
        self.uid = Packet._counter
        self.five_tuple = five_tuple
        self.payload = payload

    @property
    def size(self):
        return len(self.payload)
