"""Core upload and repository components for Shopassets.

Submodules are imported directly (`shopassets.core.orchestrator`, ...) so the
client and backends can depend on `shopassets.core.errors` without cycles.
"""
