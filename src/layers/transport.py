# transport.py - UDP traffic applications (constant bit rate client, counting server)

from models import Packet, TimestampHeader


class UdpClient:
    """
    Sends one datagram every interval between start and stop, at most
    max_packets of them (0 means no cap).
    Each datagram carries a TimestampHeader with its sequence number and send time.
    """

    def __init__(self, env, five_tuple, packet_size, interval, start, stop, send,
                 max_packets=0):
        self.env = env
        self.five_tuple = five_tuple
        self.packet_size = packet_size
        self.interval = interval
        self.start = start
        self.stop = stop
        self.send = send
        self.max_packets = max_packets
        self.sent = 0
        self.process = env.process(self._run())

    def _run(self):
        while not self.max_packets or self.sent < self.max_packets:
            # Absolute send times so long runs do not drift
            send_time = self.start + self.sent * self.interval
            if send_time >= self.stop:
                return
            if send_time > self.env.now:
                yield self.env.timeout(send_time - self.env.now)
            header = TimestampHeader(self.sent, int(round(self.env.now * 1e9)))
            packet = Packet(self.five_tuple, header.pack(self.packet_size))
            self.sent += 1
            self.send(packet)


class UdpServer:
    """Listens on one port; counts what arrives while the socket is open."""

    def __init__(self, env, port, start, stop):
        self.env = env
        self.port = port
        self.start = start
        self.stop = stop
        self.received = 0
        self.rx_bytes = 0

    def is_running(self):
        return self.start <= self.env.now < self.stop

    def receive(self, packet):
        """Returns False when the socket is not open yet (or anymore)."""
        if not self.is_running():
            return False
        self.received += 1
        self.rx_bytes += packet.size
        return True
