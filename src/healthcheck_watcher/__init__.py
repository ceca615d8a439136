"""Docker health-check and lifecycle watcher with Microsoft Teams alerts."""

__version__ = "0.1.0"
