"""Prometheus text exposition for cache statistics."""

from __future__ import annotations

from idemcache.core.models import CacheStats


def render_prometheus(stats: CacheStats, prefix: str = "idemcache") -> str:
    """Render *stats* in the Prometheus text format (no client library needed)."""
    metrics = [
        ("entries", "gauge", "Entries currently stored", stats.size),
        ("capacity", "gauge", "Configured maximum entries", stats.capacity),
        ("hits_total", "counter", "Lookups that returned a live entry", stats.hits),
        ("misses_total", "counter", "Lookups that found nothing live", stats.misses),
        ("evictions_total", "counter", "Entries evicted to respect capacity", stats.evictions),
        ("expirations_total", "counter", "Expired entries removed", stats.expirations),
        ("hit_ratio", "gauge", "hits / (hits + misses)", stats.hit_ratio),
    ]
    lines = []
    for name, kind, help_text, value in metrics:
        full = f"{prefix}_{name}"
        lines.append(f"# HELP {full} {help_text}")
        lines.append(f"# TYPE {full} {kind}")
        lines.append(f"{full} {value}")
    return "\n".join(lines) + "\n"
