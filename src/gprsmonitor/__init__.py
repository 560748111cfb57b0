"""


Modem Monitor

- Conduit: abstraction of a bi-directional channel. Combines 2 streams for reading and writing.
- Connector: the connection cycle to one modem endpoint. Issues non-blocking connection attempts,
  reports whether the connection is active or timed out, and reads/writes through the conduit.
- ConnectionManager - keeps one Session per modem address. A session is pending while a connection
  attempt is in flight; lost connections are reconnected the next time the session is requested,
  without issuing a second attempt while one is pending.
- Entities - ModemEntity and ConversionEntity, loaded from the backend API and merged in place on
  each refresh.
- Monitor - owns the entity tables and, on each tick, dispatches every connected modem to the
  stage listener selected by the modem's stage. A listener runs its actions; an action writes a
  register read command and decodes the response into the modem's fields.


## Threading

Everything runs on the calling thread. Connection attempts do not block; reads and writes block
for at most the communication timeout. One modem is polled at a time, so a session is never used
by two actions at once.

"""
