"""
Bridge daemon package for the SolisCloud-to-home-automation pipeline.

Polls the SolisCloud platform API for inverter telemetry, normalizes the
loosely-typed response into a fixed snapshot, and publishes it into a set of
read-only sensor accessories whose identities stay stable across restarts.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""
