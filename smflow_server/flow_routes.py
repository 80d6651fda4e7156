"""API routes for state machines and their flows."""

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from smflow.errors import InvalidGraphError
from smflow.graph import FlowGraph
from smflow.models.flow import FlowData, FlowNode, NodeAck, SaveAck
from smflow_server.flow_db import (
    StateMachineRow,
    create_state_machine as db_create_state_machine,
    delete_state_machine as db_delete_state_machine,
    get_state_machine as db_get_state_machine,
    insert_node as db_insert_node,
    list_state_machines as db_list_state_machines,
    load_flow as db_load_flow,
    save_flow as db_save_flow,
    update_state_machine as db_update_state_machine,
    upsert_node as db_upsert_node,
)

router = APIRouter()


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StateMachineItem(_CamelModel):
    """list/detail row for a state machine."""

    id: str
    name: str
    description: str
    base_url: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: StateMachineRow) -> "StateMachineItem":
        return cls(
            id=str(row.id),
            name=row.name,
            description=row.description,
            base_url=row.base_url,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class StateMachineDetail(StateMachineItem):
    flow_data: FlowData


class StateMachineList(_CamelModel):
    items: list[StateMachineItem] = Field(alias="list")
    total: int


class CreateStateMachineRequest(_CamelModel):
    name: str
    description: str = ""


class UpdateStateMachineRequest(_CamelModel):
    name: str | None = None
    description: str | None = None
    base_url: str | None = None
    flow_data: FlowData | None = None


def _require_state_machine(sm_id: int) -> StateMachineRow:
    row = db_get_state_machine(sm_id)
    if not row:
        raise HTTPException(status_code=404, detail=f"State machine not found: {sm_id}")
    return row


def _checked_flow(flow: FlowData) -> FlowData:
    """reject duplicate node ids and drop edges with missing endpoints."""
    try:
        return FlowGraph.from_flow_data(flow).to_flow_data()
    except InvalidGraphError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/flow")
def list_state_machines(
    page: int = 1,
    page_size: int = Query(10, alias="pageSize"),
    keyword: str | None = None,
) -> StateMachineList:
    """list state machines, newest first."""
    page = max(page, 1)
    if page_size < 1 or page_size > 100:
        page_size = 10
    rows, total = db_list_state_machines(keyword, page, page_size)
    return StateMachineList(items=[StateMachineItem.from_row(row) for row in rows], total=total)


@router.post("/flow")
def create_state_machine(request: CreateStateMachineRequest) -> StateMachineItem:
    row = db_create_state_machine(request.name, request.description)
    return StateMachineItem.from_row(row)


@router.get("/flow/{sm_id}/flow", response_model_exclude_none=True)
def get_flow(sm_id: int) -> FlowData:
    """nodes and edges of a state machine, as the designer canvas loads them."""
    _require_state_machine(sm_id)
    return db_load_flow(sm_id)


@router.put("/flow/{sm_id}/flow")
def save_flow(sm_id: int, flow: FlowData) -> SaveAck:
    """replace the whole flow with the posted snapshot."""
    _require_state_machine(sm_id)
    updated_at = db_save_flow(sm_id, _checked_flow(flow))
    return SaveAck(ok=True, updated_at=updated_at)


@router.put("/flow/{sm_id}/nodes/{node_id}")
def upsert_node(sm_id: int, node_id: str, node: FlowNode) -> NodeAck:
    """create or update a single node from the edit dialog."""
    _require_state_machine(sm_id)
    if node.id != node_id:
        raise HTTPException(status_code=400, detail=f"Node id mismatch: {node.id} != {node_id}")
    db_upsert_node(sm_id, node)
    return NodeAck(ok=True)


@router.post("/flow/{sm_id}/nodes")
def create_node(sm_id: int, node: FlowNode) -> NodeAck:
    _require_state_machine(sm_id)
    if not db_insert_node(sm_id, node):
        raise HTTPException(status_code=409, detail=f"Node already exists: {node.id}")
    return NodeAck(ok=True)


@router.get("/flow/{sm_id}", response_model_exclude_none=True)
def get_state_machine(sm_id: int) -> StateMachineDetail:
    """a state machine with its flow data."""
    row = _require_state_machine(sm_id)
    item = StateMachineItem.from_row(row)
    return StateMachineDetail(**item.model_dump(), flow_data=db_load_flow(sm_id))


@router.put("/flow/{sm_id}")
def update_state_machine(sm_id: int, request: UpdateStateMachineRequest) -> StateMachineItem:
    """update name/description/base url, optionally saving flow data too."""
    _require_state_machine(sm_id)
    if request.flow_data is not None:
        db_save_flow(sm_id, _checked_flow(request.flow_data))
    row = db_update_state_machine(
        sm_id,
        name=request.name,
        description=request.description,
        base_url=request.base_url,
    )
    return StateMachineItem.from_row(row)


@router.delete("/flow/{sm_id}")
def delete_state_machine(sm_id: int) -> dict:
    _require_state_machine(sm_id)
    db_delete_state_machine(sm_id)
    return {"deleted": str(sm_id)}
