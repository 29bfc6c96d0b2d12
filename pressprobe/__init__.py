"""PressProbe - Outside-in WordPress fingerprinting.

Identifies the platform version, active theme and installed plugins of a
WordPress site from public resources only, and flags outdated components.
This is NOT an attack tool. It only issues read-only GET/HEAD requests.
"""

__version__ = "1.0.0"
__author__ = "PressProbe Team"

# Usage notice
USAGE_NOTICE = """
╔══════════════════════════════════════════════════════════════════╗
║  PressProbe only reads publicly served files (GET/HEAD/Range).   ║
║  Fingerprint sites you own or are authorized to assess.          ║
╚══════════════════════════════════════════════════════════════════╝
"""
