"""
Service for drawing rating histograms shown on the responses page.
"""

import io
import base64
import logging
from typing import List

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.ticker import MaxNLocator

from portal.services.aggregation import ChartPoint

logger = logging.getLogger(__name__)

BAR_COLOR = '#3b82f6'


def render_histogram_png(points: List[ChartPoint], title: str = '') -> bytes:
    """
    Create a bar chart of response counts per rating value.

    Returns:
        PNG image bytes
    """
    labels = [point.rating for point in points]
    counts = [point.count for point in points]

    fig, ax = plt.subplots(figsize=(6, 3))
    try:
        bars = ax.bar(labels, counts, color=BAR_COLOR)

        ax.set_xlabel('Rating')
        ax.set_ylabel('Number of Responses')
        if title:
            ax.set_title(title, fontsize=10)
        ax.set_ylim(0, max(counts + [1]) * 1.15)
        ax.yaxis.set_major_locator(MaxNLocator(integer=True))

        # Add value labels on top of each bar
        for bar, count in zip(bars, counts):
            ax.text(bar.get_x() + bar.get_width() / 2.0, bar.get_height(),
                    f'{count}', ha='center', va='bottom', fontsize=9)

        ax.grid(True, axis='y', linestyle='--', alpha=0.7)
        fig.tight_layout()

        buf = io.BytesIO()
        fig.savefig(buf, format='png', dpi=100)
    finally:
        plt.close(fig)

    return buf.getvalue()


def histogram_data_uri(points: List[ChartPoint], title: str = '') -> str:
    """PNG histogram encoded as a data: URI for an <img> tag."""
    encoded = base64.b64encode(render_histogram_png(points, title)).decode('ascii')
    return f"data:image/png;base64,{encoded}"
