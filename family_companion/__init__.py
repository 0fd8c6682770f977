"""
Family Companion Server

A family-care backend pairing two chat personas, Grace for an elderly user
and Alex for a caregiver, with a WebSocket hub that relays messages to the
response generator and fans out notes between the two agents.
"""

__version__ = "1.0.0"
