import datetime
import logging
import os
from typing import List, Optional, Sequence, Tuple

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

from wfq_simulation.packet import Packet
from wfq_simulation.schedule_statistics import ScheduleStatistics


def visualize_schedule(
    dispatched: Sequence[Tuple[int, Packet]],
    statistics: ScheduleStatistics,
    out_dir: str = "results",
    title: str = "",
) -> Optional[str]:
    """Plot the link schedule: one row per flow with its transmission intervals, and the
    mean/max queuing delay per flow underneath.

    Args:
        dispatched: (start, packet) pairs in schedule order
        statistics: statistics accumulated over the same dispatch
        out_dir: output directory for the PNG file
        title: optional suffix for the figure title

    Returns:
        Path to saved file, or None if there is nothing to plot.
    """
    if not dispatched:
        logging.warning("No dispatched packets to visualize")
        return None

    # Rows ordered by flow discovery order.
    flow_keys = sorted(statistics.flows, key=lambda k: statistics.flows[k].priority)
    row_of = {key: row for row, key in enumerate(flow_keys)}
    labels = [str(key) for key in flow_keys]

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 4 + 0.4 * len(flow_keys)),
                                   gridspec_kw={'height_ratios': [3, 2]})

    # Top plot: transmission intervals per flow
    colors = plt.cm.tab20(np.linspace(0, 1, max(len(flow_keys), 1)))
    bars: List[List[Tuple[int, int]]] = [[] for _ in flow_keys]
    arrivals: List[List[int]] = [[] for _ in flow_keys]
    for start, packet in dispatched:
        row = row_of[packet.flow_key]
        bars[row].append((start, packet.length))
        arrivals[row].append(packet.arrival)
    for row, intervals in enumerate(bars):
        ax1.broken_barh(intervals, (row - 0.4, 0.8), facecolors=tuple(colors[row]), edgecolor='black', linewidth=0.3)
        ax1.plot(arrivals[row], [row - 0.45] * len(arrivals[row]), linestyle='none', marker='^',
                 markersize=4, color='gray')
    ax1.set_yticks(range(len(flow_keys)))
    ax1.set_yticklabels(labels, fontsize=8)
    ax1.invert_yaxis()
    ax1.set_xlabel('Simulated time', fontsize=11)
    ax1.set_title(f'WFQ Link Schedule{" (" + title + ")" if title else ""}', fontsize=14, fontweight='bold')
    ax1.grid(axis='x', alpha=0.3)

    # Bottom plot: queuing delay per flow
    x = np.arange(len(flow_keys))
    avg_delay = np.array([statistics.flows[k].avg_delay for k in flow_keys])
    max_delay = np.array([statistics.flows[k].max_delay for k in flow_keys])
    width = 0.4
    ax2.bar(x - width / 2, avg_delay, width=width, color='steelblue', label='Avg delay')
    ax2.bar(x + width / 2, max_delay, width=width, color='darkorange', label='Max delay')
    ax2.set_xticks(x)
    ax2.set_xticklabels(labels, rotation=30, ha='right', fontsize=8)
    ax2.set_ylabel('Start - arrival', fontsize=11)
    ax2.grid(axis='y', alpha=0.3)
    ax2.legend(loc='upper right')

    stats_text = (f"{statistics.packet_count:,} packets | {len(flow_keys)} flows | "
                  f"Makespan: {statistics.makespan} | Utilization: {statistics.utilization:.1%}")
    fig.text(0.5, 0.01, stats_text, ha='center', fontsize=10, style='italic')

    plt.tight_layout()
    plt.subplots_adjust(bottom=0.15)

    os.makedirs(out_dir, exist_ok=True)
    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = os.path.join(out_dir, f"wfq_schedule_{timestamp}.png")
    plt.savefig(filepath, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logging.info(f"Schedule graph saved to: {filepath}")
    return filepath
