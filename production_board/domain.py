"""Core data structures for the production scheduling board."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

StripId = Any
LineId = Any

PLACEHOLDER_LINE_CODE = "0001"


def same_id(left: object, right: object) -> bool:
    """Compare two identifiers the way the board payload does (loosely)."""

    if left is None or right is None:
        return False
    return str(left) == str(right)


def _as_int(value: object) -> Optional[int]:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _check_quantity(value: Optional[float], name: str) -> None:
    if value is not None and value < 0:
        raise ValueError(f"{name} must not be negative")


class ActionType(str, Enum):
    """Mutation kinds understood by the mutation engine."""

    MOVE_ALONG_LINE = "move_along_line"
    MOVE_ACROSS_LINES = "move_across_lines"
    SPLIT_PARENT = "split_parent"
    SPLIT_CHILD = "split_child"

    @property
    def label(self) -> str:
        if self in (ActionType.MOVE_ALONG_LINE, ActionType.MOVE_ACROSS_LINES):
            return "Move Order"
        return "Split Order"


@dataclass(slots=True)
class StripLayout:
    """Presentation-only placement of a strip on its line."""

    offset: Optional[float] = None
    width: Optional[float] = None
    bg_colour: Optional[str] = None
    border: Optional[str] = None
    top_level_width: bool = False
    details_extra: Dict[str, Any] = field(default_factory=dict)
    css_extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class OrderDetails:
    """Descriptive order payload. Copied through, never interpreted."""

    buyer_short_name: str = ""
    order_reference_number: str = ""
    pic_file_name: str = ""
    oc_extra: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Strip:
    """One scheduled order instance on a line."""

    strip_id: StripId
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    quantity: float = 0
    layout: StripLayout = field(default_factory=StripLayout)
    order_details: OrderDetails = field(default_factory=OrderDetails)
    parent_strip_id: Optional[StripId] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_quantity(self.quantity, "Strip quantity")

    @property
    def units(self) -> float:
        """Legacy name for the quantity used by nested order details."""

        return self.quantity

    @property
    def is_temporary(self) -> bool:
        numeric = _as_int(self.strip_id)
        return numeric is not None and numeric < 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Strip":
        data = dict(payload)
        strip_details = data.pop("stripDetails", None) or {}
        details_extra = {
            key: value
            for key, value in strip_details.items()
            if key not in {"stripWidth", "cssStyles"}
        }
        css = strip_details.get("cssStyles") or {}
        width = strip_details.get("stripWidth")
        # a nested width wins; the top-level copy then stays in extra
        top_level_width = data.pop("stripWidth", None) if width is None else None
        layout = StripLayout(
            offset=data.pop("stripOffSetWithCell", None),
            width=width if width is not None else top_level_width,
            bg_colour=css.get("bgColour"),
            border=css.get("border"),
            top_level_width=width is None and top_level_width is not None,
            details_extra=details_extra,
            css_extra={
                key: value
                for key, value in css.items()
                if key not in {"bgColour", "border"}
            },
        )

        order_data = dict(data.pop("orderDetails", None) or {})
        order_data.pop("quantity", None)
        oc_data = dict(order_data.pop("ocDetails", None) or {})
        oc_data.pop("units", None)
        order_details = OrderDetails(
            buyer_short_name=oc_data.pop("buyerShortName", "") or "",
            order_reference_number=oc_data.pop("orderReferenceNumber", "") or "",
            pic_file_name=oc_data.pop("picFileName", "") or "",
            oc_extra=oc_data,
            extra=order_data,
        )
        return cls(
            strip_id=data.pop("stripId"),
            start_date=data.pop("startDate", None),
            end_date=data.pop("endDate", None),
            quantity=data.pop("quantity", 0) or 0,
            layout=layout,
            order_details=order_details,
            parent_strip_id=data.pop("parentStripId", None),
            extra=data,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Encode the strip, deriving the nested quantity copies."""

        payload: Dict[str, Any] = {
            "stripId": self.strip_id,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "quantity": self.quantity,
        }
        layout = self.layout
        if layout.offset is not None:
            payload["stripOffSetWithCell"] = layout.offset
        if layout.top_level_width:
            payload["stripWidth"] = layout.width
        strip_details: Dict[str, Any] = dict(layout.details_extra)
        if layout.width is not None and not layout.top_level_width:
            strip_details["stripWidth"] = layout.width
        css: Dict[str, Any] = dict(layout.css_extra)
        if layout.bg_colour is not None:
            css["bgColour"] = layout.bg_colour
        if layout.border is not None:
            css["border"] = layout.border
        if css:
            strip_details["cssStyles"] = css
        if strip_details:
            payload["stripDetails"] = strip_details

        details = self.order_details
        oc_details: Dict[str, Any] = dict(details.oc_extra)
        oc_details.update(
            {
                "buyerShortName": details.buyer_short_name,
                "orderReferenceNumber": details.order_reference_number,
                "picFileName": details.pic_file_name,
                "units": self.units,
            }
        )
        order_payload: Dict[str, Any] = dict(details.extra)
        order_payload["quantity"] = self.units
        order_payload["ocDetails"] = oc_details
        payload["orderDetails"] = order_payload
        if self.parent_strip_id is not None:
            payload["parentStripId"] = self.parent_strip_id
        payload.update(self.extra)
        return payload


@dataclass(slots=True)
class Line:
    """A physical production line holding strips in display order."""

    line_id: LineId
    line_code: str
    orders: List[Strip] = field(default_factory=list)
    site_id: Optional[Any] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_placeholder(self) -> bool:
        return self.line_code == PLACEHOLDER_LINE_CODE and self.site_id == 0

    def index_of(self, strip_id: StripId) -> int:
        for index, strip in enumerate(self.orders):
            if same_id(strip.strip_id, strip_id):
                return index
        return -1

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Line":
        data = dict(payload)
        orders = [Strip.from_payload(item) for item in data.pop("ordersData", None) or []]
        return cls(
            line_id=data.pop("lineId"),
            line_code=str(data.pop("lineCode", "")),
            orders=orders,
            site_id=data.pop("siteID", None),
            extra=data,
        )

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"lineId": self.line_id, "lineCode": self.line_code}
        if self.site_id is not None:
            payload["siteID"] = self.site_id
        payload["ordersData"] = [strip.to_payload() for strip in self.orders]
        payload.update(self.extra)
        return payload


@dataclass(slots=True)
class Factory:
    """The full schedule: lines with their strips plus the opaque grid blob."""

    lines: List[Line] = field(default_factory=list)
    grid: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def visible_lines(self) -> List[Line]:
        return [line for line in self.lines if not line.is_placeholder]

    def find_line(self, line_id: LineId) -> Optional[Line]:
        for line in self.lines:
            if same_id(line.line_id, line_id):
                return line
        return None

    def find_strip(self, strip_id: StripId) -> Optional[Tuple[Line, int, Strip]]:
        """Locate a strip by id across all lines; the first match wins."""

        for line in self.lines:
            index = line.index_of(strip_id)
            if index != -1:
                return line, index, line.orders[index]
        return None

    def strip_ids(self) -> List[StripId]:
        return [strip.strip_id for line in self.lines for strip in line.orders]

    def duplicate_strip_ids(self) -> List[StripId]:
        seen = set()
        duplicates: List[StripId] = []
        for strip_id in self.strip_ids():
            numeric = _as_int(strip_id)
            if numeric is None or numeric <= 0:
                continue
            if numeric in seen and strip_id not in duplicates:
                duplicates.append(strip_id)
            seen.add(numeric)
        return duplicates

    def next_temporary_id(self) -> int:
        """Return a negative id below every id currently on the board."""

        numeric_ids = [
            value for value in (_as_int(item) for item in self.strip_ids()) if value is not None
        ]
        return min([0, *numeric_ids]) - 1

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Factory":
        factory_data = dict(payload.get("factoryData") or {})
        lines = [Line.from_payload(item) for item in factory_data.pop("data", None) or []]
        return cls(lines=lines, grid=payload.get("gridData"), extra=factory_data)

    def to_payload(self) -> Dict[str, Any]:
        factory_data: Dict[str, Any] = dict(self.extra)
        factory_data["data"] = [line.to_payload() for line in self.lines]
        return {"factoryData": factory_data, "gridData": self.grid}


@dataclass(slots=True)
class Operation:
    """A single structured board mutation proposed by an advisory service."""

    action_type: str
    strip_id: Optional[StripId] = None
    start_date_from: Optional[str] = None
    start_date_to: Optional[str] = None
    line_id_to: Optional[LineId] = None
    quantity_to: Optional[float] = None
    new_line_id: Optional[LineId] = None
    new_start_date: Optional[str] = None
    new_quantity: Optional[float] = None
    parent_strip_id: Optional[StripId] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _check_quantity(self.quantity_to, "quantityTo")
        _check_quantity(self.new_quantity, "newQuantity")

    @property
    def kind(self) -> Optional[ActionType]:
        try:
            return ActionType(self.action_type)
        except ValueError:
            return None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Operation":
        data = dict(payload)
        return cls(
            action_type=str(data.pop("actionType", "") or ""),
            strip_id=data.pop("stripId", None),
            start_date_from=data.pop("startDateFrom", None),
            start_date_to=data.pop("startDateTo", None),
            line_id_to=data.pop("lineIdTo", None),
            quantity_to=data.pop("quantityTo", None),
            new_line_id=data.pop("newLineId", None),
            new_start_date=data.pop("newStartDate", None),
            new_quantity=data.pop("newQuantity", None),
            parent_strip_id=data.pop("parentStripId", None),
            extra=data,
        )

    @classmethod
    def from_scenario_payload(cls, payload: Mapping[str, Any]) -> "Operation":
        """Decode a scenario step, mapping simulator aliases onto canonical names."""

        data = dict(payload)
        line_id = data.pop("lineId", None)
        start_date = data.pop("startDate", None)
        quantity = data.pop("quantity", None)
        if line_id is not None:
            data["newLineId"] = line_id
        if start_date is not None:
            data["newStartDate"] = start_date
        if not data.get("newQuantity") and quantity is not None:
            data["newQuantity"] = quantity
        elif quantity is not None:
            data["quantity"] = quantity
        return cls.from_payload(data)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"actionType": self.action_type}
        fields = (
            ("stripId", self.strip_id),
            ("startDateFrom", self.start_date_from),
            ("startDateTo", self.start_date_to),
            ("lineIdTo", self.line_id_to),
            ("quantityTo", self.quantity_to),
            ("newLineId", self.new_line_id),
            ("newStartDate", self.new_start_date),
            ("newQuantity", self.new_quantity),
            ("parentStripId", self.parent_strip_id),
        )
        for key, value in fields:
            if value is not None:
                payload[key] = value
        payload.update(self.extra)
        return payload


__all__ = [
    "ActionType",
    "StripLayout",
    "OrderDetails",
    "Strip",
    "Line",
    "Factory",
    "Operation",
    "same_id",
]
