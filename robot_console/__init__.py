"""
Robot Console - headless core of a 6-axis robot arm operator console.

This package provides:
- A telemetry/command channel to the controller hub with automatic reconnect
- A deterministic joint motion simulator with presets and a demo sequence
- A single-writer robot state store fed by either source
- A REST client for controller configuration and serial ports
- The robot-console command-line tool
"""

__version__ = "1.0.0"
