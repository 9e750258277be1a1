"""
simkernel CLI - discrete-event simulation driver

Commands:
- simkernel run - Seed a scenario and run it to completion
- simkernel inspect - Show the seeded event queue of a scenario
- simkernel version - Show version information
"""

from simkernel import __version__

__all__ = ["__version__"]
