from transitions.extensions.asyncio import AsyncMachine
from app.core.clock import ensure_aware, utcnow
from app.core.logging_config import logger
from app.models.tenders import Tender

class TenderStateMachine:
    states = [
        "draft",
        "open",
        "closed",
        "awarded",
    ]

    def __init__(self, tender: Tender, tender_id: str):
        self.tender = tender
        self.tender_id = tender_id
        self.machine = AsyncMachine(
            model=self,
            states=TenderStateMachine.states,
            initial=tender.status or "draft",
            queued=True,
            send_event=True
        )

        self.machine.add_transition("publish", "draft", "open", conditions="deadline_not_passed")
        self.machine.add_transition("close", "open", "closed")
        self.machine.add_transition("expire", "open", "closed", conditions="deadline_passed")
        self.machine.add_transition("reopen", "closed", "open", conditions="deadline_not_passed")
        self.machine.add_transition("award", ["open", "closed"], "awarded")

    def _now(self, event):
        return ensure_aware(event.kwargs.get("now")) or utcnow()

    def deadline_passed(self, event) -> bool:
        deadline = ensure_aware(self.tender.deadline)
        return deadline is not None and deadline < self._now(event)

    def deadline_not_passed(self, event) -> bool:
        return not self.deadline_passed(event)

    async def on_enter_open(self, event):
        logger.info(f"Tender {self.tender_id} entered state open via {event.event.name}")

    async def on_enter_closed(self, event):
        logger.info(f"Tender {self.tender_id} entered state closed via {event.event.name}")

    async def on_enter_awarded(self, event):
        logger.info(f"Tender {self.tender_id} entered state awarded")
