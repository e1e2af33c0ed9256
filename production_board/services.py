"""Service layer that ties the board, the engine and the advisory services together."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence
from uuid import uuid4

from .advisory import AdvisoryClient, AdvisoryTransportError
from .config import Settings
from .domain import Factory, Operation
from .engine import MutationEngine
from .intake import (
    FALLBACK_MESSAGE,
    AdvisoryMessage,
    AdvisoryResponse,
    DrillDownKind,
    MalformedResponseError,
    Proposal,
    ProposalBatch,
    Scenario,
    ScenarioSet,
    decode_response,
    summarize,
)
from .repository import InMemoryRepository, RecordNotFoundError
from .snapshots import SnapshotRegistry
from .store import BoardStore

logger = logging.getLogger(__name__)


class CardKind(str, Enum):
    PROPOSAL = "proposal"
    SCENARIO = "scenario"


class CardState(str, Enum):
    """Lifecycle of an action card."""

    PROPOSED = "Proposed"
    APPLIED = "Applied"
    UNDONE = "Undone"
    DISMISSED = "Dismissed"


class CardTransitionError(ValueError):
    """Raised when a card is asked to do something its state does not allow."""


class QuickAction(str, Enum):
    """Toolbar shortcuts offered next to the board."""

    BUYERS = "buyers"
    ORDERS = "orders"
    BOARD = "board"
    SIMULATE = "simulate"


QUICK_ACTION_PROMPTS = {
    QuickAction.BUYERS: "Optimize Buyers",
    QuickAction.ORDERS: "optimize orders",
    QuickAction.BOARD: "optimize board",
}

SIMULATION_FAILURE_MESSAGE = "Could not run simulations. Please check connection."


@dataclass(slots=True)
class ActionCard:
    """A user-facing proposal or scenario that can be applied and undone."""

    token: str
    kind: CardKind
    operations: List[Operation]
    state: CardState = CardState.PROPOSED
    label: str = ""
    reasoning: str = ""
    title: str = ""
    expected_outcome: str = ""
    recommended: bool = False

    @property
    def can_apply(self) -> bool:
        return self.state in (CardState.PROPOSED, CardState.UNDONE)

    @property
    def can_undo(self) -> bool:
        return self.state is CardState.APPLIED

    @property
    def can_dismiss(self) -> bool:
        return self.state in (CardState.PROPOSED, CardState.UNDONE)


@dataclass(slots=True)
class AdvisoryReply:
    """What a conversation call hands back to the presentation layer."""

    response: AdvisoryResponse
    cards: List[ActionCard] = field(default_factory=list)
    summary: List[str] = field(default_factory=list)


def connection_error_message(url: str) -> str:
    return (
        f"**Connection Error:** Could not reach the optimization engine at {url}. "
        "Please check your network connection."
    )


class BoardService:
    """Facade that exposes board use-cases to clients.

    All board changes go through :meth:`apply_operation` and
    :meth:`apply_scenario`, which always start from the latest value held by
    the store.
    """

    def __init__(
        self,
        factory: Factory,
        *,
        engine: Optional[MutationEngine] = None,
        client: Optional[AdvisoryClient] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.store = BoardStore(factory)
        self.snapshots = SnapshotRegistry()
        self.engine = engine or MutationEngine(self.settings.engine_options())
        self.cards: InMemoryRepository[ActionCard] = InMemoryRepository("Action card")
        self.client = client

    @property
    def factory(self) -> Factory:
        return self.store.current

    # ------------------------------------------------------------------
    # Presentation boundary
    # ------------------------------------------------------------------
    def apply_operation(
        self, factory: Factory, operation: Operation, render: bool = True
    ) -> Factory:
        updated = self.engine.apply(factory, operation)
        self.store.replace(updated, notify=render)
        return updated

    def apply_scenario(self, factory: Factory, operations: Sequence[Operation]) -> Factory:
        # The store only sees the result once every step has been applied.
        board = self.engine.apply_many(factory, operations)
        self.store.replace(board)
        return board

    def snapshot(self, token: str) -> None:
        self.snapshots.snapshot(token, self.store.current)

    def restore(self, token: str) -> Factory:
        return self.snapshots.restore(token)

    # ------------------------------------------------------------------
    # Action cards
    # ------------------------------------------------------------------
    def register_proposal(self, proposal: Proposal) -> ActionCard:
        card = ActionCard(
            token=f"prop-{uuid4().hex}",
            kind=CardKind.PROPOSAL,
            operations=[proposal.operation],
            label=proposal.label,
            reasoning=proposal.reasoning,
        )
        self.cards.add(card.token, card)
        return card

    def register_scenario(self, scenario: Scenario) -> ActionCard:
        card = ActionCard(
            token=f"scen-{uuid4().hex}",
            kind=CardKind.SCENARIO,
            operations=list(scenario.operations),
            label="Scenario",
            title=scenario.name,
            expected_outcome=scenario.expected_outcome,
            recommended=scenario.recommended,
        )
        self.cards.add(card.token, card)
        return card

    def apply_card(self, token: str) -> ActionCard:
        card = self.cards.get(token)
        if not card.can_apply:
            raise CardTransitionError(f"Card {token!r} cannot be applied while {card.state.value}")
        self.snapshot(token)
        if card.kind is CardKind.SCENARIO:
            self.apply_scenario(self.store.current, card.operations)
        else:
            self.apply_operation(self.store.current, card.operations[0])
        card.state = CardState.APPLIED
        logger.info("Applied %s card %s (%d operations)", card.kind.value, token, len(card.operations))
        return card

    def undo_card(self, token: str) -> ActionCard:
        card = self.cards.get(token)
        if not card.can_undo:
            raise CardTransitionError(f"Card {token!r} cannot be undone while {card.state.value}")
        self.store.replace(self.restore(token))
        card.state = CardState.UNDONE
        logger.info("Undid card %s", token)
        return card

    def dismiss_card(self, token: str) -> ActionCard:
        card = self.cards.get(token)
        if not card.can_dismiss:
            raise CardTransitionError(f"Card {token!r} cannot be dismissed while {card.state.value}")
        if token in self.snapshots:
            self.snapshots.discard(token)
        card.state = CardState.DISMISSED
        return card

    # ------------------------------------------------------------------
    # Conversation with the advisory services
    # ------------------------------------------------------------------
    def ask(self, message: str) -> AdvisoryReply:
        client = self._require_client()
        try:
            payload = client.optimize(self.store.current, message)
        except AdvisoryTransportError as exc:
            logger.error("Optimization call failed: %s", exc)
            return self._reply(
                AdvisoryMessage(connection_error_message(exc.url), is_error=True)
            )
        return self._handle(payload)

    def run_simulation(self) -> AdvisoryReply:
        client = self._require_client()
        try:
            payload = client.simulate(self.store.current)
        except AdvisoryTransportError as exc:
            logger.error("Simulation call failed: %s", exc)
            return self._reply(AdvisoryMessage(SIMULATION_FAILURE_MESSAGE, is_error=True))
        return self._handle(payload)

    def quick_action(self, action: QuickAction) -> AdvisoryReply:
        if action is QuickAction.SIMULATE:
            return self.run_simulation()
        return self.ask(QUICK_ACTION_PROMPTS[action])

    def choose_option(self, kind: DrillDownKind, value: str) -> AdvisoryReply:
        if kind is DrillDownKind.BUYERS:
            return self.ask(f"Optimize for buyer {value}")
        return self.ask(f"Optimize order #{value}")

    def analyze_strip(self, strip_id: object) -> AdvisoryReply:
        located = self.store.current.find_strip(strip_id)
        if located is None:
            raise RecordNotFoundError(f"Strip {strip_id!r} not found")
        line, _, strip = located
        return self.ask(
            f"Provide detailed analysis for Order #{strip.strip_id} on Line {line.line_code}."
        )

    def _handle(self, payload: object) -> AdvisoryReply:
        try:
            response = decode_response(payload, strict=self.settings.strict_responses)
        except MalformedResponseError as exc:
            if self.settings.strict_responses:
                raise
            logger.warning("Malformed advisory response, using fallback message: %s", exc)
            response = AdvisoryMessage(FALLBACK_MESSAGE)
        cards: List[ActionCard] = []
        if isinstance(response, ProposalBatch):
            cards = [self.register_proposal(proposal) for proposal in response.proposals]
        elif isinstance(response, ScenarioSet):
            cards = [self.register_scenario(scenario) for scenario in response.scenarios]
        return self._reply(response, cards)

    def _reply(
        self, response: AdvisoryResponse, cards: Optional[List[ActionCard]] = None
    ) -> AdvisoryReply:
        return AdvisoryReply(response=response, cards=cards or [], summary=summarize(response))

    def _require_client(self) -> AdvisoryClient:
        if self.client is None:
            self.client = AdvisoryClient(self.settings)
        return self.client


__all__ = [
    "ActionCard",
    "AdvisoryReply",
    "BoardService",
    "CardKind",
    "CardState",
    "CardTransitionError",
    "QuickAction",
]
