# link.py - MAC layer: bounded queues, rate control and frame retries

import random
import re
from collections import deque

from config import *
from errors import EngineFailure
from layers.physical import distance

_SIZE_RE = re.compile(r"^\s*(\d+)\s*p\s*$")
_TIME_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(s|ms|us|ns)\s*$")
_TIME_UNITS = {"s": 1.0, "ms": 1e-3, "us": 1e-6, "ns": 1e-9}


def parse_queue_size(value):
    """'500p' -> 500"""
    match = _SIZE_RE.match(str(value))
    if not match:
        raise EngineFailure(f"cannot parse queue size {value!r}", parameter="MaxSize")
    return int(match.group(1))


def parse_time(value):
    """'100ms' -> 0.1 (seconds)"""
    match = _TIME_RE.match(str(value))
    if not match:
        raise EngineFailure(f"cannot parse time value {value!r}", parameter="MaxDelay")
    return float(match.group(1)) * _TIME_UNITS[match.group(2)]


class MacQueue:
    """
    Drop-tail FIFO bounded by packet count and by sojourn time.
    Expired packets are removed when they reach the head.
    """

    def __init__(self, max_size, max_delay=None, on_drop=None):
        self.max_size = max_size
        self.max_delay = max_delay
        self.on_drop = on_drop
        self.items = deque()  # (packet, next_hop, enqueue_time)

    def __len__(self):
        return len(self.items)

    def enqueue(self, packet, next_hop, now):
        if len(self.items) >= self.max_size:
            self._drop(packet, "queue-full")
            return False
        self.items.append((packet, next_hop, now))
        return True

    def dequeue(self, now):
        """Return the first unexpired (packet, next_hop), or None."""
        while self.items:
            packet, next_hop, enqueued = self.items.popleft()
            if self.max_delay is not None and now - enqueued > self.max_delay:
                self._drop(packet, "queue-expired")
                continue
            return packet, next_hop
        return None

    def _drop(self, packet, reason):
        if self.on_drop is not None:
            self.on_drop(packet, reason)


class ConstantRateManager:
    """Data frames at one fixed mode; ACKs at the control mode."""

    def __init__(self, data_mode, control_mode=None):
        for label, mode in (("DataMode", data_mode), ("ControlMode", control_mode)):
            if mode is not None and mode not in VHT_RATES:
                raise EngineFailure(f"unknown {label} {mode!r}", parameter=label)
        self.data_mode = data_mode
        self.control_mode = control_mode or data_mode

    def select(self, now):
        return self.data_mode

    def report(self, mode, success, now):
        pass


class MinstrelRateManager:
    """
    Picks the rate with the best expected throughput (rate x success
    probability); a fixed share of frames samples another rate so the
    statistics of unused rates stay fresh.
    """

    def __init__(self, rates=None, seed=None):
        self.rates = dict(rates or VHT_RATES)
        self.rng = random.Random(seed)
        self.ewma_prob = {mode: 1.0 for mode in self.rates}
        self.attempts = {mode: 0 for mode in self.rates}
        self.successes = {mode: 0 for mode in self.rates}
        self.best = max(self.rates, key=self.rates.get)
        # ACKs go at the most robust rate
        self.control_mode = min(self.rates, key=self.rates.get)
        self.next_update = MINSTREL_UPDATE_INTERVAL

    def select(self, now):
        if now >= self.next_update:
            self._update_stats()
            self.next_update = now + MINSTREL_UPDATE_INTERVAL
        if self.rng.random() < MINSTREL_LOOKAROUND:
            return self.rng.choice(list(self.rates))
        return self.best

    def report(self, mode, success, now):
        self.attempts[mode] += 1
        if success:
            self.successes[mode] += 1

    def _update_stats(self):
        for mode in self.rates:
            if self.attempts[mode]:
                sample = self.successes[mode] / self.attempts[mode]
                self.ewma_prob[mode] = (MINSTREL_EWMA * self.ewma_prob[mode]
                                        + (1 - MINSTREL_EWMA) * sample)
            self.attempts[mode] = 0
            self.successes[mode] = 0
        self.best = max(self.rates, key=lambda m: self.rates[m] * self.ewma_prob[m])


def make_rate_manager(attrs, seed=None):
    """Build the rate manager selected by the engine's default attributes."""
    name = attrs.get("WifiHelper::RemoteStationManager", "ConstantRateWifiManager")
    if name == "ConstantRateWifiManager":
        return ConstantRateManager(attrs.get("ConstantRateWifiManager::DataMode", "VhtMcs9"),
                                   attrs.get("ConstantRateWifiManager::ControlMode", "VhtMcs0"))
    if name in ("MinstrelHtWifiManager", "MinstrelWifiManager"):
        return MinstrelRateManager(seed=seed)
    raise EngineFailure(f"unknown rate manager {name!r}", parameter="RemoteStationManager")


class LinkLayer:
    """
    One network device: a MAC queue drained onto a shared medium.
    The medium is a simpy resource, so only one frame occupies it at a time.
    """

    def __init__(self, env, node, medium, phy, queue, rate_manager,
                 wireless=True, on_receive=None, on_drop=None):
        self.env = env
        self.node = node
        self.medium = medium
        self.phy = phy
        self.queue = queue
        self.rate_manager = rate_manager
        self.wireless = wireless
        self.on_receive = on_receive
        self.on_drop = on_drop
        self.address = None
        self.ssid = None
        self.position = lambda: None
        self.retries = 0
        self._wakeup = None
        self.process = env.process(self._tx_loop())

    def send(self, packet, peer):
        """Queue a packet for the peer device on the same medium."""
        if self.queue.enqueue(packet, peer, self.env.now) and self._wakeup is not None:
            if not self._wakeup.triggered:
                self._wakeup.succeed()

    def _tx_loop(self):
        while True:
            item = self.queue.dequeue(self.env.now)
            if item is None:
                self._wakeup = self.env.event()
                yield self._wakeup
                self._wakeup = None
                continue

            packet, peer = item
            header = WIFI_HEADER_SIZE if self.wireless else 0
            frame_bytes = packet.size + IP_UDP_HEADER_SIZE + header
            delivered = False

            with self.medium.request() as req:
                yield req
                if not self.wireless:
                    yield self.env.timeout(self.phy.tx_time(frame_bytes))
                    delivered = True
                else:
                    control = VHT_RATES[self.rate_manager.control_mode] * 1e6
                    ack_time = self.phy.tx_time(WIFI_ACK_SIZE, control)
                    for attempt in range(RETRY_LIMIT + 1):
                        mode = self.rate_manager.select(self.env.now)
                        rate = VHT_RATES[mode] * 1e6
                        yield self.env.timeout(self.phy.tx_time(frame_bytes, rate) + ack_time
                                               + WIFI_MAC_OVERHEAD)
                        corrupted = self.phy.check_error(frame_bytes, VHT_ERROR_SCALE[mode])
                        self.rate_manager.report(mode, not corrupted, self.env.now)
                        if not corrupted:
                            delivered = True
                            break
                        self.retries += 1

            if not delivered:
                if self.on_drop is not None:
                    self.on_drop(packet, "retry-limit")
                continue

            self.env.process(self._propagate(packet, peer))

    def _propagate(self, packet, peer):
        here, there = self.position(), peer.position()
        if self.wireless and here is not None and there is not None:
            delay = self.phy.calculate_delay(0, distance=distance(here, there))
        else:
            delay = self.phy.calculate_delay(0)
        yield self.env.timeout(delay)
        if peer.on_receive is not None:
            peer.on_receive(packet, peer)
