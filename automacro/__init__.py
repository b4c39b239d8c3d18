"""
AutoMacro - Application-aware macro pad daemon

Runs recorded key macros when buttons on a HID macro pad are pressed,
choosing the button layout from the focused application and keeping the
pad's LEDs in sync with the active layout.
"""

__version__ = "0.1.0"
