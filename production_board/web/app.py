"""FastAPI-based web interface for the production board copilot."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel

from ..advisory import AdvisoryClient
from ..config import Settings, get_settings
from ..domain import Factory
from ..engine import ReferenceNotFoundError
from ..intake import (
    AdvisoryMessage,
    DrillDown,
    DrillDownKind,
    ProposalBatch,
    ScenarioSet,
)
from ..repository import RecordNotFoundError
from ..sample_usage import build_demo_factory
from ..services import (
    ActionCard,
    AdvisoryReply,
    BoardService,
    CardTransitionError,
    QuickAction,
)


class AskRequest(BaseModel):
    message: str


class OptionRequest(BaseModel):
    kind: DrillDownKind
    value: str


def load_factory(settings: Settings) -> Factory:
    if settings.board_data_path:
        payload = json.loads(Path(settings.board_data_path).read_text(encoding="utf-8"))
        return Factory.from_payload(payload)
    return build_demo_factory()


def create_app(
    settings: Optional[Settings] = None,
    *,
    factory: Optional[Factory] = None,
    client: Optional[AdvisoryClient] = None,
) -> FastAPI:
    settings = settings or get_settings()
    service = BoardService(
        factory if factory is not None else load_factory(settings),
        client=client,
        settings=settings,
    )

    app = FastAPI(title="Production Board Copilot")
    app.state.board_service = service

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - framework hook
        if service.client is not None:
            service.client.close()

    @app.get("/board")
    async def board(request: Request):
        service: BoardService = request.app.state.board_service
        factory = service.factory
        return {
            "board": factory.to_payload(),
            "lines": [
                {
                    "lineId": line.line_id,
                    "lineCode": line.line_code,
                    "strips": [strip.strip_id for strip in line.orders],
                }
                for line in factory.visible_lines()
            ],
            "renderCount": service.store.render_count,
        }

    @app.get("/cards")
    async def list_cards(request: Request):
        service: BoardService = request.app.state.board_service
        return [serialize_card(card) for card in service.cards.list()]

    # Advisory calls block on HTTP and run in the threadpool. Card
    # transitions stay on the event loop so the board has a single writer.
    @app.post("/copilot/ask")
    def ask(body: AskRequest, request: Request):
        service: BoardService = request.app.state.board_service
        return serialize_reply(service.ask(body.message))

    @app.post("/copilot/actions/{action}")
    def quick_action(action: str, request: Request):
        service: BoardService = request.app.state.board_service
        try:
            selected = QuickAction(action)
        except ValueError:
            raise HTTPException(status_code=404, detail=f"Unknown action {action!r}")
        return serialize_reply(service.quick_action(selected))

    @app.post("/copilot/options")
    def choose_option(body: OptionRequest, request: Request):
        service: BoardService = request.app.state.board_service
        return serialize_reply(service.choose_option(body.kind, body.value))

    @app.post("/strips/{strip_id}/analysis")
    def analyze_strip(strip_id: str, request: Request):
        service: BoardService = request.app.state.board_service
        try:
            reply = service.analyze_strip(strip_id)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc))
        return serialize_reply(reply)

    @app.post("/cards/{token}/apply")
    async def apply_card(token: str, request: Request):
        service: BoardService = request.app.state.board_service
        return card_transition(lambda: service.apply_card(token))

    @app.post("/cards/{token}/undo")
    async def undo_card(token: str, request: Request):
        service: BoardService = request.app.state.board_service
        return card_transition(lambda: service.undo_card(token))

    @app.post("/cards/{token}/dismiss")
    async def dismiss_card(token: str, request: Request):
        service: BoardService = request.app.state.board_service
        return card_transition(lambda: service.dismiss_card(token))

    return app


def card_transition(action) -> Dict[str, Any]:
    try:
        card = action()
    except ReferenceNotFoundError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except CardTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return serialize_card(card)


def serialize_card(card: ActionCard) -> Dict[str, Any]:
    return {
        "token": card.token,
        "kind": card.kind.value,
        "state": card.state.value,
        "label": card.label,
        "reasoning": card.reasoning,
        "title": card.title,
        "expectedOutcome": card.expected_outcome,
        "recommended": card.recommended,
        "operations": [operation.to_payload() for operation in card.operations],
    }


def serialize_reply(reply: AdvisoryReply) -> Dict[str, Any]:
    response = reply.response
    body: Dict[str, Any] = {
        "summary": reply.summary,
        "cards": [serialize_card(card) for card in reply.cards],
    }
    if isinstance(response, ProposalBatch):
        body["type"] = "proposals"
    elif isinstance(response, ScenarioSet):
        body["type"] = "scenarios"
    elif isinstance(response, DrillDown):
        body["type"] = "drill_down"
        body["kind"] = response.kind.value
        body["options"] = list(response.options)
        body["optionLabels"] = option_labels(reply)
    elif isinstance(response, AdvisoryMessage):
        body["type"] = "error" if response.is_error else "message"
    return body


def option_labels(reply: AdvisoryReply) -> List[str]:
    response = reply.response
    if not isinstance(response, DrillDown):
        return []
    prefix = "#" if response.kind is DrillDownKind.ORDERS else ""
    return [f"{prefix}{option}" for option in response.options]
