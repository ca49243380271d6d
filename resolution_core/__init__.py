# =============================================================================
# resolution_core/__init__.py
# Resolution Tracker Core
# =============================================================================
"""
Offline-first core for the Resolution Tracker.

Sub-packages:
    models     - Goal records and pending updates
    offline    - Local durable store, connectivity, sync coordinator
    notion     - Remote gateway to the Notion database
    assets     - Asset cache generations and the fetch interceptor
    services   - Progress statistics for display
"""

__version__ = "1.0.0"
