"""Data model for flow definitions.

Nodes and edges are stored and exchanged in the same camelCase shape the
designer canvas uses, so a saved flow can be rendered without conversion.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# size used when the renderer has not measured a node yet
FALLBACK_WIDTH = 150.0
FALLBACK_HEIGHT = 50.0


class NodeKind(str, Enum):
    """Closed set of node categories."""

    start = "start"
    end = "end"
    default = "default"  # a plain scene
    choice = "choice"
    result = "result"


class PortSide(str, Enum):
    """Side of a node that edges attach to."""

    left = "left"
    right = "right"
    top = "top"
    bottom = "bottom"


class LayoutDirection(str, Enum):
    """Axis along which layout ranks are laid out."""

    LR = "LR"  # left to right
    TB = "TB"  # top to bottom

    @property
    def is_horizontal(self) -> bool:
        return self is LayoutDirection.LR


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Position(_CamelModel):
    x: float = 0.0
    y: float = 0.0


class Dimensions(_CamelModel):
    """Size of a node as measured by the rendering layer."""

    width: float = FALLBACK_WIDTH
    height: float = FALLBACK_HEIGHT


class OptionItem(_CamelModel):
    """an outgoing option of a choice node or an incoming result of a result node."""

    label: str = ""
    description: str = ""


class NodeData(_CamelModel):
    """Semantic payload carried by a node.

    Unknown keys are kept so fields added by newer editors survive a
    load/save cycle.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    label: str = ""
    description: str = ""
    request_path: str = ""
    request_method: str = ""
    request_data: str = ""
    # choice nodes
    output_count: int = 0
    options: list[OptionItem] = Field(default_factory=list)
    # result nodes
    input_count: int = 0
    results: list[OptionItem] = Field(default_factory=list)


class FlowNode(_CamelModel):
    """A state in the flow graph."""

    id: str = Field(min_length=1)
    type: NodeKind = NodeKind.default
    position: Position = Field(default_factory=Position)
    dimensions: Dimensions | None = None
    data: NodeData = Field(default_factory=NodeData)
    source_position: PortSide | None = None
    target_position: PortSide | None = None

    def to_payload(self) -> dict[str, Any]:
        """Single-node upsert body: ``{id, type, position, data}``."""
        return self.model_dump(
            mode="json", by_alias=True, include={"id", "type", "position", "data"}
        )


class FlowEdge(_CamelModel):
    """A directed transition between two nodes."""

    id: str = ""
    source: str
    target: str
    label: str | None = None


class FlowData(_CamelModel):
    """Whole-flow snapshot exchanged with the persistence backend."""

    nodes: list[FlowNode] = Field(default_factory=list)
    edges: list[FlowEdge] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "FlowData":
        return cls(nodes=[], edges=[])

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SaveAck(_CamelModel):
    """Acknowledgement returned by a whole-flow save."""

    ok: bool
    updated_at: str | None = None


class NodeAck(_CamelModel):
    ok: bool
