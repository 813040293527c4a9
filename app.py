#!/usr/bin/env python3
"""
Crypto News Intelligence - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
This is the ONE executable entry point for the service.

- Compatible with PM2 process management
- Can be started, stopped, and restarted safely
- Handles SIGINT / SIGTERM gracefully
- Runs the ingestion scheduler and the read API together

============================================================
USAGE
============================================================
Direct execution:
    python app.py

One cycle and exit:
    python app.py --single-cycle

With PM2:
    pm2 start app.py --interpreter python --name news-intel

Environment-based configuration:
    PORT=9000 CYCLE_INTERVAL_SECONDS=30 python app.py

============================================================
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from orchestrator.cli import main


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
