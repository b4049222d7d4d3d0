"""
Port definitions for the immortal IR.

Ports are the typed connection points of a node. An edge of kind
DataFlow, Trigger or Navigation runs from an output port to an input
port; ports are identified by an id unique within node and direction.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .types import ANY, TRIGGER, ConfigValue, DataType, DataTypeKind, PortDirection, PortKind


class Port(BaseModel):
    """A named, typed connection point on a node."""

    id: str
    name: str
    description: str | None = None
    direction: PortDirection
    kind: PortKind = PortKind.DATA
    data_type: DataType = ANY
    multiple: bool = False  # accepts/emits more than one connection
    required: bool = False
    default_value: ConfigValue | None = None
    order: int = 0

    @classmethod
    def data_in(cls, port_id: str, data_type: DataType, name: str | None = None) -> Port:
        return cls(
            id=port_id,
            name=name or port_id,
            direction=PortDirection.INPUT,
            kind=PortKind.DATA,
            data_type=data_type,
        )

    @classmethod
    def data_out(cls, port_id: str, data_type: DataType, name: str | None = None) -> Port:
        return cls(
            id=port_id,
            name=name or port_id,
            direction=PortDirection.OUTPUT,
            kind=PortKind.DATA,
            data_type=data_type,
            multiple=True,
        )

    @classmethod
    def trigger_in(cls, port_id: str, name: str | None = None) -> Port:
        return cls(
            id=port_id,
            name=name or port_id,
            direction=PortDirection.INPUT,
            kind=PortKind.TRIGGER,
            data_type=TRIGGER,
        )

    @classmethod
    def trigger_out(cls, port_id: str, name: str | None = None) -> Port:
        return cls(
            id=port_id,
            name=name or port_id,
            direction=PortDirection.OUTPUT,
            kind=PortKind.TRIGGER,
            data_type=TRIGGER,
            multiple=True,
        )

    @classmethod
    def flow_in(cls, port_id: str, name: str | None = None) -> Port:
        return cls(
            id=port_id,
            name=name or port_id,
            direction=PortDirection.INPUT,
            kind=PortKind.FLOW,
            data_type=TRIGGER,
        )

    @classmethod
    def flow_out(cls, port_id: str, name: str | None = None) -> Port:
        return cls(
            id=port_id,
            name=name or port_id,
            direction=PortDirection.OUTPUT,
            kind=PortKind.FLOW,
            data_type=TRIGGER,
        )

    def with_description(self, description: str) -> Port:
        self.description = description
        return self

    def with_order(self, order: int) -> Port:
        self.order = order
        return self

    def mark_required(self) -> Port:
        self.required = True
        return self

    def mark_multiple(self) -> Port:
        self.multiple = True
        return self

    @property
    def is_input(self) -> bool:
        return self.direction == PortDirection.INPUT

    @property
    def is_output(self) -> bool:
        return self.direction == PortDirection.OUTPUT

    def can_connect_to(self, other: Port) -> bool:
        """
        Whether an edge may join this port and ``other``.

        Directions must differ, kinds must match, and the output side's
        type must be compatible with the input side's type.
        """
        if self.direction == other.direction or self.kind != other.kind:
            return False
        source, target = (self, other) if self.is_output else (other, self)
        return source.data_type.is_compatible_with(target.data_type)

    @property
    def color_hint(self) -> str:
        """Hex color an editor may use to draw this port."""
        if self.kind == PortKind.TRIGGER:
            return "#f5a623"
        if self.kind == PortKind.FLOW:
            return "#ffffff"
        kind = self.data_type.unwrap_optional().kind
        if kind in (DataTypeKind.STRING, DataTypeKind.TEXT):
            return "#7ed321"
        if self.data_type.is_numeric:
            return "#4a90e2"
        if kind == DataTypeKind.BOOL:
            return "#d0021b"
        if kind in (DataTypeKind.ENTITY, DataTypeKind.REFERENCE):
            return "#9013fe"
        if kind == DataTypeKind.ARRAY:
            return "#50e3c2"
        return "#9b9b9b"


class PortCollection(BaseModel):
    """Input and output ports of a node."""

    inputs: list[Port] = Field(default_factory=list)
    outputs: list[Port] = Field(default_factory=list)

    def add_input(self, port: Port) -> None:
        self.inputs.append(port)

    def add_output(self, port: Port) -> None:
        self.outputs.append(port)

    def add(self, port: Port) -> None:
        """Add a port to the side its direction names."""
        if port.is_input:
            self.add_input(port)
        else:
            self.add_output(port)

    def get_input(self, port_id: str) -> Port | None:
        return next((p for p in self.inputs if p.id == port_id), None)

    def get_output(self, port_id: str) -> Port | None:
        return next((p for p in self.outputs if p.id == port_id), None)

    def get(self, port_id: str) -> Port | None:
        """Find a port by id, inputs first."""
        return self.get_input(port_id) or self.get_output(port_id)

    def all(self) -> list[Port]:
        return [*self.inputs, *self.outputs]

    def sort_by_order(self) -> None:
        self.inputs.sort(key=lambda p: p.order)
        self.outputs.sort(key=lambda p: p.order)

    def __len__(self) -> int:
        return len(self.inputs) + len(self.outputs)
