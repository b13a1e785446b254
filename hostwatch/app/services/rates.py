from __future__ import annotations

from typing import Sequence

from hostwatch.app.schemas.metrics import NetworkRatePoint, Sample


def compute_network_rates(samples: Sequence[Sample]) -> list[NetworkRatePoint]:
    """Per-second send/receive rates between adjacent samples.

    Counter resets (reboot, wrap) show up as negative deltas and are clamped to zero.
    Pairs without elapsed time are skipped.
    """
    points: list[NetworkRatePoint] = []
    for previous, current in zip(samples, samples[1:]):
        elapsed = current.timestamp - previous.timestamp
        if elapsed <= 0:
            continue
        delta_sent = current.network_sent_bytes_cumulative - previous.network_sent_bytes_cumulative
        delta_recv = current.network_recv_bytes_cumulative - previous.network_recv_bytes_cumulative
        points.append(
            NetworkRatePoint(
                timestamp=current.timestamp,
                sent_bytes_per_sec=round(max(0.0, delta_sent / elapsed), 1),
                recv_bytes_per_sec=round(max(0.0, delta_recv / elapsed), 1),
            )
        )
    return points
