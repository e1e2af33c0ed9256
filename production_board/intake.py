"""Decoding of advisory service responses into board operations.

Responses are decoded exactly once into one of the variants below. Callers
dispatch on the variant type instead of probing optional keys.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from .domain import Operation

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    "I analyzed the board but found no specific actions required at this moment."
)
BUYERS_PROMPT = "Which buyer would you like to optimize?"
ORDERS_PROMPT = "Which order needs attention?"

RECOGNIZED_KEYS = frozenset(
    {"stripJsonData", "availableBuyers", "availableOrders", "scenarios", "message"}
)


class MalformedResponseError(ValueError):
    """Raised when an advisory response cannot be decoded."""


class DrillDownKind(str, Enum):
    BUYERS = "buyers"
    ORDERS = "orders"


@dataclass(slots=True)
class Proposal:
    """A single operation suggested by the optimizer, with its rationale."""

    operation: Operation
    reasoning: str = ""

    @property
    def label(self) -> str:
        kind = self.operation.kind
        return kind.label if kind is not None else "Optimization"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Proposal":
        data = dict(payload)
        reasoning = data.pop("reasoning", "") or ""
        return cls(operation=Operation.from_payload(data), reasoning=str(reasoning))


@dataclass(slots=True)
class Scenario:
    """A named, ordered batch of operations from the simulator."""

    name: str
    operations: List[Operation] = field(default_factory=list)
    expected_outcome: str = ""
    recommended: bool = False

    @classmethod
    def from_payload(
        cls, payload: Mapping[str, Any], recommended_name: Optional[str] = None
    ) -> "Scenario":
        name = str(payload.get("name", ""))
        return cls(
            name=name,
            operations=[
                Operation.from_scenario_payload(step)
                for step in payload.get("operations") or []
            ],
            expected_outcome=str(payload.get("expectedOutcome", "") or ""),
            recommended=recommended_name is not None and recommended_name == name,
        )


@dataclass(slots=True)
class Recommendation:
    scenario: str
    reasoning: str = ""


@dataclass(slots=True)
class ProposalBatch:
    proposals: List[Proposal]
    message: Optional[str] = None


@dataclass(slots=True)
class DrillDown:
    """Candidate buyers or orders the user should pick from. No board change."""

    kind: DrillDownKind
    options: List[str]
    message: str


@dataclass(slots=True)
class ScenarioSet:
    scenarios: List[Scenario]
    recommendation: Optional[Recommendation] = None


@dataclass(slots=True)
class AdvisoryMessage:
    message: str
    is_error: bool = False


AdvisoryResponse = Union[ProposalBatch, DrillDown, ScenarioSet, AdvisoryMessage]


def _list_field(payload: Mapping[str, Any], key: str) -> List[Any]:
    value = payload.get(key)
    if isinstance(value, list):
        return value
    return []


def decode_response(payload: Any, *, strict: bool = False) -> AdvisoryResponse:
    """Decode an optimizer or simulator response body.

    With ``strict`` an object that carries none of the recognized keys, or a
    proposal that cannot be decoded, raises :class:`MalformedResponseError`.
    Otherwise invalid proposals are dropped and an unrecognized object degrades
    to the fallback advisory message. A body that is not an object always
    raises.
    """

    if not isinstance(payload, Mapping):
        raise MalformedResponseError(
            f"Advisory response must be a JSON object, got {type(payload).__name__}"
        )
    try:
        return _decode(payload, strict)
    except MalformedResponseError:
        raise
    except (TypeError, ValueError, AttributeError) as exc:
        raise MalformedResponseError(f"Invalid advisory response: {exc}") from exc


def _decode(payload: Mapping[str, Any], strict: bool) -> AdvisoryResponse:
    message = payload.get("message") or None

    proposals = _decode_proposals(_list_field(payload, "stripJsonData"), strict)
    if proposals:
        return ProposalBatch(proposals=proposals, message=message)

    buyers = _list_field(payload, "availableBuyers")
    if buyers:
        return DrillDown(
            kind=DrillDownKind.BUYERS,
            options=[str(item) for item in buyers],
            message=message or BUYERS_PROMPT,
        )
    orders = _list_field(payload, "availableOrders")
    if orders:
        return DrillDown(
            kind=DrillDownKind.ORDERS,
            options=[str(item) for item in orders],
            message=message or ORDERS_PROMPT,
        )

    if isinstance(payload.get("scenarios"), list):
        raw_recommendation = payload.get("recommendation") or None
        recommendation = None
        if isinstance(raw_recommendation, Mapping):
            recommendation = Recommendation(
                scenario=str(raw_recommendation.get("scenario", "")),
                reasoning=str(raw_recommendation.get("reasoning", "") or ""),
            )
        recommended_name = recommendation.scenario if recommendation else None
        return ScenarioSet(
            scenarios=[
                Scenario.from_payload(item, recommended_name)
                for item in payload["scenarios"]
            ],
            recommendation=recommendation,
        )

    if message is None and not RECOGNIZED_KEYS.intersection(payload):
        if strict:
            raise MalformedResponseError(
                f"Unrecognized advisory response keys: {sorted(payload)}"
            )
        logger.warning(
            "Advisory response had no recognized keys (%s); using fallback message",
            ", ".join(sorted(payload)) or "empty",
        )
    return AdvisoryMessage(message=message or FALLBACK_MESSAGE)


def _decode_proposals(items: List[Any], strict: bool) -> List[Proposal]:
    proposals: List[Proposal] = []
    for item in items:
        try:
            proposals.append(Proposal.from_payload(item))
        except (TypeError, ValueError, AttributeError) as exc:
            if strict:
                raise MalformedResponseError(f"Invalid proposal {item!r}: {exc}") from exc
            logger.warning("Dropping invalid proposal %r: %s", item, exc)
    return proposals


def summarize(response: AdvisoryResponse) -> List[str]:
    """Chat lines that introduce a decoded response."""

    if isinstance(response, ProposalBatch):
        return [
            f"I found **{len(response.proposals)}** optimization opportunities."
        ]
    if isinstance(response, DrillDown):
        return [response.message]
    if isinstance(response, ScenarioSet):
        lines = [
            f"I've generated **{len(response.scenarios)}** simulation scenarios "
            "based on current data."
        ]
        if response.recommendation is not None:
            lines.append(f"Recommendation: {response.recommendation.reasoning}")
        return lines
    if isinstance(response, AdvisoryMessage):
        return [response.message]
    raise TypeError(f"Unsupported advisory response {type(response).__name__}")


__all__ = [
    "AdvisoryMessage",
    "AdvisoryResponse",
    "DrillDown",
    "DrillDownKind",
    "FALLBACK_MESSAGE",
    "MalformedResponseError",
    "Proposal",
    "ProposalBatch",
    "Recommendation",
    "Scenario",
    "ScenarioSet",
    "decode_response",
    "summarize",
]
