from gprsmonitor.monitor.action import ActionResult
from gprsmonitor.monitor.actions import ActionType


class MonitorStageListener:
    """
    The handler of one stage of the polling cycle.

    Runs its actions in the order added. When none fails, the modem moves to the next stage;
    otherwise it stays on this stage and is retried on the next tick.
    """

    def __init__(self, code):
        self.code = code
        self._actions = []

    def add(self, action_type: ActionType) -> 'MonitorStageListener':
        if not isinstance(action_type, ActionType):
            raise TypeError("not an action type: %r" % (action_type,))
        self._actions.append(action_type)
        return self

    @property
    def actions(self):
        return tuple(self._actions)

    def execute(self, context) -> bool:
        """
        :return: True if the modem advanced to the next stage
        """
        for action_type in self._actions:
            result = action_type.create(context).execute()
            if result is ActionResult.FAILED:
                return False
        context.modem.next_stage()
        return True

    def __repr__(self):
        return 'MonitorStageListener(%r, %r)' % (self.code, [a.name for a in self._actions])
