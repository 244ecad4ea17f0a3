"""
hwinventory - Hardware and Software Inventory Collector

Gathers machine facts (motherboard, disk, OS, CPU, BIOS, GPU, installed
software) from the local host or a list of remote hosts, and optionally
exports the aggregated records as CSV, JSON, TXT, XML or HTML.

Modules:
    - inventory: Collector functions and command-line entry point
    - collector: Fan-out of one probe across many targets
    - exporter: Format validation, path resolution and atomic file export
    - formats: Renderers for each export format
    - channels: Local and SSH execution channels
    - probes: Per-kind host probes reading facts from the current host
    - records: Targets, records and probe outcomes
    - errors: Error taxonomy
    - utils: Configuration and logging helpers
"""

__version__ = "1.0.0"
__author__ = "hwinventory Contributors"
__license__ = "Apache-2.0"
