"""
The connector interfaces with a remote modem that communicates via a conduit.
A connector owns the connection cycle to one endpoint: it issues connection attempts,
reports whether the connection is active or has timed out, and reads and writes raw bytes.
"""
