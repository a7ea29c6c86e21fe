"""cafewatch -- Presence and session registry for networked terminals.

Terminals on the local network push periodic heartbeats to a central
server. The server derives which terminals are live from the time since
their last heartbeat, lets an operator name live terminals, and hands out
launch directives that each terminal acknowledges once picked up.
"""

__version__ = "1.0.0"
