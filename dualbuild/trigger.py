from dualbuild.schemas import EventKind, TriggerEvent


class TriggerEvaluator:
    branch: str

    def __init__(self, branch: str):
        self.branch = branch

    def qualifies(self, event: TriggerEvent) -> bool:
        return (
            event.kind in (EventKind.push, EventKind.pull_request)
            and event.branch == self.branch
        )
