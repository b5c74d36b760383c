# config.py

# Scenario Defaults
SIMULATION_TIME = 100.0     # s
N_STATIONS = 3
RADIUS = 40.0               # m
PACKET_INTERVAL = 50.0      # ms
PACKET_SIZE = 1000          # Byte
VARIANTS = ["EDCA", "WMM"]

# Traffic Staggering
FORWARD_INTERVAL_STEP = 10.0    # ms added per station index
RETURN_INTERVAL_EXTRA = 20.0    # ms
FORWARD_START = 5.0             # s
FORWARD_START_STEP = 2.0        # s
RETURN_START = 10.0             # s
RETURN_START_STEP = 2.0         # s
FORWARD_SINK_START = 1.0        # s
RETURN_SINK_START = 2.0         # s
BASE_PORT = 5000
MAX_PORT = 65535

# Topology
AP_POSITION = (0.0, 0.0, 0.0)
SERVER_POSITION = (30.0, 0.0, 0.0)
WIFI_SUBNET = "10.1.1.0/24"
CSMA_SUBNET = "10.1.2.0/24"
SSID = "voip-qos"

# Station Mobility (random walk)
WALK_SPEED = 0.5            # m/s
WALK_CHANGE_TIME = 5.0      # s
WALK_BOUNDS = (-100.0, 100.0, -100.0, 100.0)

# Wired Link
CSMA_DATA_RATE = 100 * 10**6    # 100 Mbps
CSMA_DELAY = 0.002              # 2 ms
CSMA_QUEUE_SIZE = 100           # packets

# Wi-Fi PHY (802.11ac, 20 MHz, 1 spatial stream, Mbps)
VHT_RATES = {
    "VhtMcs0": 6.5, "VhtMcs1": 13.0, "VhtMcs2": 19.5, "VhtMcs3": 26.0,
    "VhtMcs4": 39.0, "VhtMcs5": 52.0, "VhtMcs6": 58.5, "VhtMcs7": 65.0,
    "VhtMcs8": 78.0, "VhtMcs9": 86.7,
}
# BER multiplier per MCS: denser constellations corrupt more bits
VHT_ERROR_SCALE = {
    "VhtMcs0": 0.05, "VhtMcs1": 0.1, "VhtMcs2": 0.2, "VhtMcs3": 0.35,
    "VhtMcs4": 0.5, "VhtMcs5": 0.7, "VhtMcs6": 0.85, "VhtMcs7": 1.0,
    "VhtMcs8": 1.6, "VhtMcs9": 2.5,
}
SPEED_OF_LIGHT = 3e8
PROCESSING_DELAY = 0.0001   # 100 us per hop
WIFI_MAC_OVERHEAD = 0.000100    # DIFS + SIFS + preambles, s
WIFI_ACK_SIZE = 14              # Byte, sent at the control rate
WIFI_HEADER_SIZE = 36           # MAC + LLC, Byte
IP_UDP_HEADER_SIZE = 28         # Byte
RETRY_LIMIT = 7

# Gilbert-Elliott Channel
P_G_TO_B = 0.002
P_B_TO_G = 0.05
BER_GOOD = 1e-7
BER_BAD = 5e-5

# Minstrel
MINSTREL_UPDATE_INTERVAL = 0.1  # s
MINSTREL_LOOKAROUND = 0.1       # fraction of frames sent at a sampled rate
MINSTREL_EWMA = 0.75

# RTP Baseline (two hosts on one point-to-point link)
RTP_DATA_RATE = 10 * 10**6     # 10 Mbps
RTP_DELAY = 0.002              # 2 ms
RTP_SUBNET = "10.1.1.0/24"
RTP_POSITIONS = ((10.0, 20.0, 0.0), (50.0, 20.0, 0.0))
RTP_PACKET_SIZE = 160          # Byte, one 20 ms G.711 frame
RTP_INTERVAL = 20.0            # ms
RTP_MAX_PACKETS = 1000
RTP_SERVER_START = 1.0         # s
RTP_CLIENT_START = 2.0         # s
RTP_DURATION = 10.0            # s

# Flow Monitor
LOST_PACKET_TIMEOUT = 10.0  # s in flight before a packet counts as lost

# Logging
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
