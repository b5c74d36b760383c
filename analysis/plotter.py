import sys

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

METRICS = [
    ("throughput_mbps", "Throughput [Mbps]"),
    ("delay_ms", "Delay [ms]"),
    ("jitter_ms", "Jitter [ms]"),
    ("loss_rate", "Packet Loss [%]"),
]


def plot_variant_comparison(csv_file="qos_summary.csv", out_file="qos_comparison.png"):
    # Load the per-variant summaries written by main.py --output
    try:
        df = pd.read_csv(csv_file)
    except FileNotFoundError:
        print(f"Error: {csv_file} not found.")
        return None

    if df.empty:
        print(f"Error: {csv_file} has no rows.")
        return None

    # Average repeated runs of the same variant (e.g. several seeds)
    avg_results = df.groupby("variant", sort=False)[[m for m, _ in METRICS]].mean()
    variants = avg_results.index.values
    x = np.arange(len(variants))
    colors = plt.cm.plasma(np.linspace(0.15, 0.85, len(variants)))

    fig, axes = plt.subplots(1, len(METRICS), figsize=(4 * len(METRICS), 4))
    for ax, (metric, label) in zip(axes, METRICS):
        values = avg_results[metric].values
        ax.bar(x, values, color=colors)
        ax.set_xticks(x)
        ax.set_xticklabels(variants)
        ax.set_title(label, fontsize=11)

        # Mark the winner: highest throughput, lowest everything else
        best = int(np.argmax(values)) if metric == "throughput_mbps" else int(np.argmin(values))
        ax.scatter(x[best], values[best], color="red", s=120, marker="*", zorder=3)

    fig.suptitle("Wi-Fi QoS Variant Comparison", fontsize=14)
    plt.tight_layout()

    plt.savefig(out_file, dpi=150)
    plt.close(fig)
    print(f"Plot saved to {out_file}")
    return out_file


if __name__ == "__main__":
    plot_variant_comparison(*sys.argv[1:3])
