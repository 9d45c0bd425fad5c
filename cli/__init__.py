"""CLI package for running and inspecting the telemetry dashboard."""
