"""Fakes and small fixtures shared by the test modules."""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from triage_study.services.tracking import SyncDeliveryError

PACKAGE_DATA = Path(__file__).resolve().parent.parent / "triage_study" / "data"

START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float = 0, ms: int = 0) -> int:
        self.now += int(seconds * 1000) + ms
        return self.now


class FakeSink:
    """Records deliveries; can fail or block until released."""

    def __init__(self):
        self.batches: List[Dict[str, Any]] = []
        self.surveys: List[Dict[str, Any]] = []
        self.fail_with: Optional[str] = None
        self.fail_survey = False
        self.gate: Optional[asyncio.Event] = None
        self.started = asyncio.Event()

    async def deliver_trace(self, participant_id: str, events: List[Dict[str, Any]]) -> None:
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise SyncDeliveryError(self.fail_with)
        self.batches.append({"participantId": participant_id, "events": list(events)})

    async def deliver_survey(self, survey: Mapping[str, Any]) -> None:
        if self.fail_survey:
            raise SyncDeliveryError("Survey endpoint unavailable")
        self.surveys.append(dict(survey))


SMALL_TREE: Dict[str, Any] = {
    "rootId": "D1",
    "nodes": [
        {
            "id": "D1",
            "type": "decision",
            "prompt": "What is the issue?",
            "options": [
                {"id": "A", "label": "Billing", "next": "D2"},
                {"id": "X", "label": "Other", "next": "O2"},
            ],
        },
        {
            "id": "D2",
            "type": "decision",
            "prompt": "Refund or credit?",
            "options": [
                {"id": "B", "label": "Refund", "next": "O1"},
                {"id": "C", "label": "Credit", "next": "D3"},
            ],
        },
        {
            "id": "D3",
            "type": "decision",
            "prompt": "How much credit?",
            "options": [
                {"id": "small", "label": "$10", "next": "O2"},
                {"id": "large", "label": "$25", "next": "O2"},
            ],
        },
        {
            "id": "O1",
            "type": "outcome",
            "prompt": "Issue the refund",
            "fields": [
                {"id": "amount", "label": "Refund amount", "type": "number", "required": True},
                {"id": "confirmed", "label": "Charge verified", "type": "checkbox", "required": True},
                {"id": "notes", "label": "Notes", "type": "textarea", "required": False},
            ],
        },
        {
            "id": "O2",
            "type": "outcome",
            "prompt": "Close with a note",
            "fields": [{"id": "notes", "label": "Notes", "type": "textarea"}],
        },
    ],
}

SMALL_CATALOG: Dict[str, Any] = {
    "tickets": [
        {
            "id": "T1",
            "customer": "Maria Keller",
            "email": "maria@example.com",
            "subject": "Charged twice",
            "description": "Two charges for one order.",
            "goldStandard": {
                "path": [
                    {"nodeId": "D1", "optionId": "A"},
                    {"nodeId": "D2", "optionId": "B"},
                ],
                "outcomeId": "O1",
                "responseTemplate": "We refunded the duplicate charge.",
            },
        },
        {
            "id": "T2",
            "customer": "Jonas Brandt",
            "email": "jonas@example.com",
            "subject": "Wants store credit",
            "description": "Prefers a credit over a refund.",
            "scheduledAppearance": 60,
            "goldStandard": {
                "path": [
                    {"nodeId": "D1", "optionId": "A"},
                    {"nodeId": "D2", "optionId": "C"},
                    {"nodeId": "D3", "optionId": "large"},
                ],
                "outcomeId": "O2",
                "responseTemplate": "We added a $25 credit.",
            },
        },
    ]
}

VALID_FIELDS = {"amount": "42.50", "confirmed": True}
