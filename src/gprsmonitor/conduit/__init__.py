"""
The conduit package provides an abstraction of a bi-directional stream to a specified endpoint.
The only concrete implementation used by the monitor is a connected TCP socket.
"""
