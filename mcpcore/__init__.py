"""Building blocks for Model Context Protocol clients and servers: JSON-RPC, handshake, context, auth, logging and transports."""

__version__ = "0.1.0"