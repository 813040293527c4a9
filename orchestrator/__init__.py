"""
Orchestrator Package - Process Runtime.

============================================================
PACKAGE OVERVIEW
============================================================
Single entrypoint that controls startup, shutdown and the
shared event loop of the news intelligence service.

============================================================
CORE PRINCIPLES
============================================================
1. The orchestrator has NO business logic
2. It only builds, starts and stops components
3. Storage failure at startup is fatal

============================================================
ARCHITECTURE
============================================================

    +-----------------------------------------------------+
    |                     Orchestrator                    |
    |-----------------------------------------------------|
    |  NewsIntelligenceRuntime | Component wiring         |
    |  setup_logging           | Root logging handler     |
    |  CLI                     | Command-line interface   |
    +-----------------------------------------------------+

============================================================
"""

from .core import NewsIntelligenceRuntime, setup_logging
from .cli import build_config, create_parser, main


__all__ = [
    "NewsIntelligenceRuntime",
    "setup_logging",
    "build_config",
    "create_parser",
    "main",
]
