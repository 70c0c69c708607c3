"""
Site Health Monitor.

Periodically probes registered HTTP endpoints, keeps a bounded log of the
outcomes, and sends edge-triggered alerts when a site goes down or recovers.
The monitoring engine (scheduling, probing, result log, alert debouncing) is
independent of the management dashboard and of the alert transport.
"""

__version__ = "0.1.0"
