"""pushcp: push files and directory trees to a peer over plain TCP.

One peer sends, the other obeys and writes to disk; either may be the TCP
server. The package keeps the wire codec apart from the sender and receiver
engines so each can be tested on its own:

- ``message``: fixed 256-byte request/reply header
- ``sender`` / ``receiver``: the two halves of the session
- ``net`` / ``fs`` / ``progress``: socket, directory cursor and progress display
"""

__version__ = "1.0.0"

__all__ = []
