"""SQLite storage for state machines and their flows."""

import json
import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from smflow.models.flow import FlowData, FlowEdge, FlowNode
from smflow.utils.identifiers import utc_timestamp

DEFAULT_DB_PATH = Path(__file__).parent / "data" / "smflow.db"
DB_PATH = Path(os.getenv("SMFLOW_DB_PATH", str(DEFAULT_DB_PATH)))


@dataclass
class StateMachineRow:
    id: int
    name: str
    description: str
    base_url: str
    created_at: str
    updated_at: str


def _connect() -> sqlite3.Connection:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    with _connect() as conn:
        conn.execute(
            """
            create table if not exists state_machines (
                id integer primary key autoincrement,
                name text not null,
                description text not null default '',
                base_url text not null default '',
                created_at text not null,
                updated_at text not null
            )
            """
        )
        conn.execute(
            """
            create table if not exists flow_nodes (
                id integer primary key autoincrement,
                sm_id integer not null,
                node_id text not null,
                type text not null default 'default',
                label text not null default '',
                node_json text not null,
                updated_at text not null,
                unique (sm_id, node_id)
            )
            """
        )
        conn.execute(
            """
            create table if not exists flow_edges (
                id integer primary key autoincrement,
                sm_id integer not null,
                edge_id text not null,
                source text not null,
                target text not null,
                label text
            )
            """
        )
        conn.execute("create index if not exists idx_flow_edges_sm_id on flow_edges(sm_id)")
        conn.commit()


def _row_to_state_machine(row: sqlite3.Row) -> StateMachineRow:
    return StateMachineRow(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        base_url=row["base_url"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def create_state_machine(name: str, description: str = "", base_url: str = "") -> StateMachineRow:
    now = utc_timestamp()
    with _connect() as conn:
        cursor = conn.execute(
            """
            insert into state_machines (name, description, base_url, created_at, updated_at)
            values (?, ?, ?, ?, ?)
            """,
            (name, description, base_url, now, now),
        )
        conn.commit()
        sm_id = cursor.lastrowid
    return StateMachineRow(sm_id, name, description, base_url, now, now)


def get_state_machine(sm_id: int) -> StateMachineRow | None:
    with _connect() as conn:
        row = conn.execute("select * from state_machines where id = ?", (sm_id,)).fetchone()
    if not row:
        return None
    return _row_to_state_machine(row)


def list_state_machines(
    keyword: str | None = None,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[StateMachineRow], int]:
    """one page of state machines, newest update first, plus the total count."""
    where = ""
    params: tuple = ()
    if keyword:
        where = "where name like ? or description like ?"
        params = (f"%{keyword}%", f"%{keyword}%")
    with _connect() as conn:
        total = conn.execute(f"select count(*) from state_machines {where}", params).fetchone()[0]
        rows = conn.execute(
            f"select * from state_machines {where} order by updated_at desc, id desc limit ? offset ?",
            (*params, page_size, (page - 1) * page_size),
        ).fetchall()
    return [_row_to_state_machine(row) for row in rows], total


def update_state_machine(
    sm_id: int,
    name: str | None = None,
    description: str | None = None,
    base_url: str | None = None,
) -> StateMachineRow | None:
    current = get_state_machine(sm_id)
    if current is None:
        return None
    updated = StateMachineRow(
        id=sm_id,
        name=current.name if name is None else name,
        description=current.description if description is None else description,
        base_url=current.base_url if base_url is None else base_url,
        created_at=current.created_at,
        updated_at=utc_timestamp(),
    )
    with _connect() as conn:
        conn.execute(
            """
            update state_machines
            set name = ?, description = ?, base_url = ?, updated_at = ?
            where id = ?
            """,
            (updated.name, updated.description, updated.base_url, updated.updated_at, sm_id),
        )
        conn.commit()
    return updated


def delete_state_machine(sm_id: int) -> None:
    with _connect() as conn:
        conn.execute("delete from flow_edges where sm_id = ?", (sm_id,))
        conn.execute("delete from flow_nodes where sm_id = ?", (sm_id,))
        conn.execute("delete from state_machines where id = ?", (sm_id,))
        conn.commit()


def load_flow(sm_id: int) -> FlowData:
    with _connect() as conn:
        node_rows = conn.execute(
            "select node_json from flow_nodes where sm_id = ? order by id", (sm_id,)
        ).fetchall()
        edge_rows = conn.execute(
            "select edge_id, source, target, label from flow_edges where sm_id = ? order by id",
            (sm_id,),
        ).fetchall()
    return FlowData(
        nodes=[FlowNode.model_validate_json(row["node_json"]) for row in node_rows],
        edges=[
            FlowEdge(id=row["edge_id"], source=row["source"], target=row["target"], label=row["label"])
            for row in edge_rows
        ],
    )


def _node_values(sm_id: int, node: FlowNode, now: str) -> tuple:
    node_json = json.dumps(node.model_dump(mode="json", by_alias=True, exclude_none=True))
    return (sm_id, node.id, node.type.value, node.data.label, node_json, now)


def save_flow(sm_id: int, flow: FlowData) -> str:
    """replace every node and edge of a state machine; returns the update timestamp."""
    now = utc_timestamp()
    with _connect() as conn:
        conn.execute("delete from flow_nodes where sm_id = ?", (sm_id,))
        conn.execute("delete from flow_edges where sm_id = ?", (sm_id,))
        conn.executemany(
            """
            insert into flow_nodes (sm_id, node_id, type, label, node_json, updated_at)
            values (?, ?, ?, ?, ?, ?)
            """,
            [_node_values(sm_id, node, now) for node in flow.nodes],
        )
        conn.executemany(
            "insert into flow_edges (sm_id, edge_id, source, target, label) values (?, ?, ?, ?, ?)",
            [(sm_id, edge.id, edge.source, edge.target, edge.label) for edge in flow.edges],
        )
        conn.execute("update state_machines set updated_at = ? where id = ?", (now, sm_id))
        conn.commit()
    return now


def upsert_node(sm_id: int, node: FlowNode) -> None:
    now = utc_timestamp()
    with _connect() as conn:
        conn.execute(
            """
            insert into flow_nodes (sm_id, node_id, type, label, node_json, updated_at)
            values (?, ?, ?, ?, ?, ?)
            on conflict(sm_id, node_id) do update set
                type = excluded.type,
                label = excluded.label,
                node_json = excluded.node_json,
                updated_at = excluded.updated_at
            """,
            _node_values(sm_id, node, now),
        )
        conn.execute("update state_machines set updated_at = ? where id = ?", (now, sm_id))
        conn.commit()


def insert_node(sm_id: int, node: FlowNode) -> bool:
    """insert a new node; False when the id is already taken."""
    now = utc_timestamp()
    try:
        with _connect() as conn:
            conn.execute(
                """
                insert into flow_nodes (sm_id, node_id, type, label, node_json, updated_at)
                values (?, ?, ?, ?, ?, ?)
                """,
                _node_values(sm_id, node, now),
            )
            conn.execute("update state_machines set updated_at = ? where id = ?", (now, sm_id))
            conn.commit()
    except sqlite3.IntegrityError:
        return False
    return True
