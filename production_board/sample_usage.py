"""Demonstration board and script for the production board copilot."""

from __future__ import annotations

from pprint import pprint
from typing import Any, Dict

from .domain import Factory, Operation
from .intake import Proposal, Scenario
from .services import BoardService


def _strip(
    strip_id: int,
    start: str,
    end: str,
    quantity: int,
    buyer: str,
    reference: str,
    *,
    offset: float,
    width: float,
    colour: str,
) -> Dict[str, Any]:
    return {
        "stripId": strip_id,
        "startDate": start,
        "endDate": end,
        "quantity": quantity,
        "stripOffSetWithCell": offset,
        "stripDetails": {
            "stripWidth": width,
            "cssStyles": {"bgColour": colour, "border": "1px solid #cbd5e1"},
        },
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


def demo_payload() -> Dict[str, Any]:
    return {
        "factoryData": {
            "data": [
                {
                    "lineId": 101,
                    "lineCode": "L-01",
                    "siteID": 1,
                    "ordersData": [
                        _strip(
                            7, "2025-01-27T08:00:00", "2025-01-30T17:00:00", 100,
                            "NORDWEAR", "PO-4471", offset=5, width=25, colour="#dbeafe",
                        ),
                        _strip(
                            8, "2025-01-31T08:00:00", "2025-02-04T17:00:00", 240,
                            "ALPINE", "PO-4502", offset=40, width=20, colour="#fef3c7",
                        ),
                    ],
                },
                {
                    "lineId": 102,
                    "lineCode": "L-02",
                    "siteID": 1,
                    "ordersData": [
                        _strip(
                            12, "2025-01-28T08:00:00", "2025-02-03T17:00:00", 500,
                            "RIVERTEX", "PO-4390", offset=10, width=30, colour="#fce7f3",
                        ),
                    ],
                },
                {"lineId": 103, "lineCode": "L-03", "siteID": 1, "ordersData": []},
            ]
        },
        "gridData": {"startDate": "2025-01-27", "endDate": "2025-02-10", "cellWidth": 48},
    }


def build_demo_factory() -> Factory:
    return Factory.from_payload(demo_payload())


def main() -> None:
    service = BoardService(build_demo_factory())
    service.store.subscribe(
        lambda factory: print(f"-- board re-rendered ({len(factory.strip_ids())} strips)")
    )

    # Einzelvorschlag: Auftrag 8 auf Linie L-03 verlagern
    move = service.register_proposal(
        Proposal(
            operation=Operation.from_payload(
                {
                    "actionType": "move_across_lines",
                    "stripId": 8,
                    "lineIdTo": 103,
                    "startDateFrom": "2025-01-29T08:00:00",
                    "startDateTo": "2025-02-02T17:00:00",
                }
            ),
            reasoning="Line L-03 is idle for the whole week.",
        )
    )
    service.apply_card(move.token)

    # Szenario: Auftrag 12 aufteilen
    split = service.register_scenario(
        Scenario(
            name="Split RIVERTEX",
            expected_outcome="Finishes PO-4390 two days earlier.",
            operations=[
                Operation.from_scenario_payload(
                    {"actionType": "split_parent", "stripId": 12, "quantityTo": 300}
                ),
                Operation.from_scenario_payload(
                    {
                        "actionType": "split_child",
                        "parentStripId": 12,
                        "lineId": 101,
                        "startDate": "2025-01-31T08:00:00",
                        "quantity": 200,
                    }
                ),
            ],
        )
    )
    service.apply_card(split.token)
    print("\nNach dem Szenario")
    pprint(service.factory.to_payload()["factoryData"])
    for line in service.factory.visible_lines():
        for strip in line.orders:
            print(
                f" {line.line_code} #{strip.strip_id}: "
                f"{strip.order_details.order_reference_number}"
            )

    service.undo_card(split.token)
    print("\nNach Rückgängig")
    for line in service.factory.visible_lines():
        print(f" {line.line_code}: {[strip.strip_id for strip in line.orders]}")


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()
