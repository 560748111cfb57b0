"""
The monitor drives each modem through a fixed cycle of stages.

- MonitorBase: owns the modem and conversion tables, refreshes them from the API and, on each
  tick, dispatches every connected modem to the listener selected by its stage.
- MonitorStageListener: the handler registered for one stage; runs its actions in order.
- Action: one request/response exchange against the register space of a modem.
  The variants are enumerated by ActionType.
"""
