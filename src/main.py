import argparse
import logging
import os
import sys

from config import *
from models import ScenarioParams
from report import print_report, write_csv, write_flow_stats
from runner import run_comparison, run_rtp_baseline
from scenario import list_variants


def build_parser():
    parser = argparse.ArgumentParser(description="Compare Wi-Fi QoS variants under VoIP-like traffic")
    parser.add_argument("--scenario", choices=["qos", "rtp"], default="qos",
                        help="qos: Wi-Fi variant comparison; rtp: point-to-point baseline")
    parser.add_argument("--stations", type=int, default=N_STATIONS, help="Number of Wi-Fi stations")
    parser.add_argument("--radius", type=float, default=RADIUS, help="Station distance from the AP (m)")
    parser.add_argument("--packet-size", type=int, default=PACKET_SIZE, help="Datagram payload (bytes)")
    parser.add_argument("--interval", type=float, default=PACKET_INTERVAL, help="Base send interval (ms)")
    parser.add_argument("--duration", type=float, default=SIMULATION_TIME, help="Simulated time (s)")
    parser.add_argument("--variants", nargs="+", default=VARIANTS, choices=list_variants(),
                        help="Variants to run, in order")
    parser.add_argument("--max-packets", type=int, default=RTP_MAX_PACKETS,
                        help="Packet cap of the rtp baseline client (0: none)")
    parser.add_argument("--seed", type=int, default=1, help="Channel and mobility seed")
    parser.add_argument("--output", default=None, help="CSV file for the summaries")
    parser.add_argument("--flow-stats", default=None, help="CSV file for per-flow counters")
    parser.add_argument("--trace-dir", default=None, help="Directory for per-packet trace CSVs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def run_experiment(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    if args.trace_dir:
        os.makedirs(args.trace_dir, exist_ok=True)

    if args.scenario == "rtp":
        print("Running RTP point-to-point baseline...")
        comparison = run_rtp_baseline(seed=args.seed, trace_dir=args.trace_dir,
                                      max_packets=args.max_packets)
    else:
        comparison = _run_qos(args)
    print_report(comparison)

    if args.output:
        write_csv(comparison.summaries, args.output)
        print(f"\nSummaries written to '{args.output}'.")
    if args.flow_stats:
        write_flow_stats(comparison.results, args.flow_stats)
        print(f"Flow statistics written to '{args.flow_stats}'.")
    if args.trace_dir and comparison.results:
        print(f"Packet traces written to '{args.trace_dir}'.")

    return comparison


def _run_qos(args):
    params = ScenarioParams(
        stations=args.stations,
        radius=args.radius,
        packet_size=args.packet_size,
        interval_ms=args.interval,
        duration=args.duration,
        variant=args.variants[0],
    )

    print("Running VoIP WiFi QoS comparison simulation...")
    return run_comparison(params, args.variants, seed=args.seed, trace_dir=args.trace_dir)


def main(argv=None):
    comparison = run_experiment(argv)
    return 1 if comparison.failures else 0


if __name__ == "__main__":
    sys.exit(main())
