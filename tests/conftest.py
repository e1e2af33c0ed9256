"""Pytest configuration and fixtures for the production board tests."""

import json
from typing import Callable, List

import httpx
import pytest

from production_board.advisory import AdvisoryClient
from production_board.config import Settings
from production_board.domain import Factory
from production_board.engine import EngineOptions, MutationEngine, no_nudge
from production_board.services import BoardService

OPTIMIZER_URL = "http://advisory.test/optimize"
SIMULATOR_URL = "http://advisory.test/generate-scenarios"


def strip_payload(strip_id, quantity, *, width=None, offset=None, buyer="ACME", reference="PO-1"):
    payload = {
        "stripId": strip_id,
        "startDate": "2025-01-27T08:00:00",
        "endDate": "2025-01-30T17:00:00",
        "quantity": quantity,
        "orderDetails": {
            "quantity": quantity,
            "ocDetails": {
                "buyerShortName": buyer,
                "orderReferenceNumber": reference,
                "picFileName": "",
                "units": quantity,
            },
        },
    }
    if offset is not None:
        payload["stripOffSetWithCell"] = offset
    if width is not None:
        payload["stripDetails"] = {
            "stripWidth": width,
            "cssStyles": {"bgColour": "#dbeafe", "border": "1px solid #93c5fd"},
        }
    return payload


def board_payload():
    return {
        "factoryData": {
            "data": [
                {
                    "lineId": "L1",
                    "lineCode": "0101",
                    "siteID": 1,
                    "ordersData": [
                        strip_payload(7, 100, width=25, offset=10),
                        strip_payload(8, 50, buyer="NORD", reference="PO-2"),
                    ],
                },
                {
                    "lineId": "L2",
                    "lineCode": "0102",
                    "siteID": 1,
                    "ordersData": [strip_payload(12, 300, width=30, offset=40)],
                },
                {"lineId": "L0", "lineCode": "0001", "siteID": 0, "ordersData": []},
            ],
            "plantName": "Plant A",
        },
        "gridData": {"startDate": "2025-01-27", "cellWidth": 48},
    }


@pytest.fixture
def payload():
    return board_payload()


@pytest.fixture
def factory() -> Factory:
    return Factory.from_payload(board_payload())


@pytest.fixture
def engine() -> MutationEngine:
    """Engine with the offset nudge switched off."""
    return MutationEngine(EngineOptions(nudge=no_nudge))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        optimization_api_url=OPTIMIZER_URL,
        simulation_api_url=SIMULATOR_URL,
        request_timeout_seconds=5.0,
    )


@pytest.fixture
def requests_seen() -> List[httpx.Request]:
    return []


@pytest.fixture
def make_client(settings, requests_seen) -> Callable[..., AdvisoryClient]:
    """Build an advisory client whose transport answers with ``handler``."""

    def build(handler) -> AdvisoryClient:
        def record(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            return handler(request)

        return AdvisoryClient(settings, transport=httpx.MockTransport(record))

    return build


@pytest.fixture
def service(factory, engine, settings) -> BoardService:
    return BoardService(factory, engine=engine, settings=settings)


def sent_json(request: httpx.Request):
    return json.loads(request.content)
