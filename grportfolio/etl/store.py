"""
SQLite-backed client store.
Each user owns an isolated set of clients; revenue lives in a child table.
"""
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine

from grportfolio.etl.keys import client_key
from grportfolio.etl.reconcile import ReconciliationPlan
from grportfolio.utils.logger import get_logger
from grportfolio.utils.normalize import normalize_client_name
from grportfolio.utils.types import ENHANCEMENT_DEFAULTS, Client

logger = get_logger(__name__)

metadata = MetaData()

clients_table = Table(
    "clients",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("name", Text, nullable=False),
    Column("name_key", Text, nullable=False),
    Column("contract_period", Text, nullable=False, default=""),
    Column("status", String(2), nullable=False, default="H"),
    Column("practice_area", Text, nullable=False, default="[]"),
    Column("relationship_strength", Float),
    Column("conflict_risk", String(16)),
    Column("time_commitment", Float),
    Column("renewal_probability", Float),
    Column("strategic_fit_score", Float),
    Column("notes", Text, nullable=False, default=""),
    Column("primary_lobbyist", Text, nullable=False, default=""),
    Column("client_originator", Text, nullable=False, default=""),
    Column("lobbyist_team", Text, nullable=False, default="[]"),
    Column("interaction_frequency", Text, nullable=False, default=""),
    Column("relationship_intensity", Float),
    Column("touched_fields", Text, nullable=False, default="[]"),
    Column("updated_at", String(32)),
    UniqueConstraint("user_id", "name_key", name="uq_clients_user_name"),
)

client_revenues_table = Table(
    "client_revenues",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("client_id", String(64), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("year", Integer, nullable=False),
    Column("amount", Float, nullable=False, default=0.0),
    UniqueConstraint("client_id", "year", name="uq_client_revenues_client_year"),
)

_LIST_FIELDS = ("practice_area", "lobbyist_team")
# SQLite caps bound parameters per statement
_IN_CHUNK = 500


def _chunks(values: Sequence[Any], size: int = _IN_CHUNK) -> Iterable[Sequence[Any]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds")


def _client_row(user_id: int, client: Client) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "id": client.id,
        "user_id": int(user_id),
        "name": client.name,
        "name_key": normalize_client_name(client.name),
        "contract_period": client.contract_period or "",
        "status": client.status,
        "touched_fields": json.dumps(sorted(client.touched_fields)),
        "updated_at": _now(),
    }
    row.update(_enhancement_values(client))
    return row


def _enhancement_values(client: Client) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for name in ENHANCEMENT_DEFAULTS:
        value = getattr(client, name)
        if name in _LIST_FIELDS:
            values[name] = json.dumps(list(value or []))
        elif isinstance(ENHANCEMENT_DEFAULTS[name], str):
            values[name] = "" if value is None else str(value)
        else:
            values[name] = value
    return values


def _row_to_client(row: Any, revenue: Dict[int, float]) -> Client:
    data = row._mapping
    enhancements = {}
    for name in ENHANCEMENT_DEFAULTS:
        value = data[name]
        if name in _LIST_FIELDS:
            value = json.loads(value or "[]")
        enhancements[name] = value
    return Client(
        id=data["id"],
        name=data["name"],
        contract_period=data["contract_period"] or "",
        status=data["status"],
        revenue=revenue,
        touched_fields=set(json.loads(data["touched_fields"] or "[]")),
        **enhancements,
    )


class ClientStore:
    """Persistence for client records, scoped by ``user_id``.

    Derived scores are never stored; callers rescore after reading.
    """

    def __init__(self, engine: Engine, create: bool = True):
        self.engine = engine
        if create:
            self.create_schema()

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def _revenue_for(self, conn: Connection, client_ids: Sequence[str]) -> Dict[str, Dict[int, float]]:
        out: Dict[str, Dict[int, float]] = {cid: {} for cid in client_ids}
        for chunk in _chunks(list(client_ids)):
            stmt = select(
                client_revenues_table.c.client_id,
                client_revenues_table.c.year,
                client_revenues_table.c.amount,
            ).where(client_revenues_table.c.client_id.in_(chunk))
            for client_id, year, amount in conn.execute(stmt):
                out[client_id][int(year)] = float(amount)
        return out

    def _load(self, conn: Connection, rows: List[Any]) -> List[Client]:
        revenue = self._revenue_for(conn, [r._mapping["id"] for r in rows])
        return [_row_to_client(r, revenue[r._mapping["id"]]) for r in rows]

    def fetch_existing_by_names(self, user_id: int, names: Iterable[str]) -> Dict[str, Client]:
        """Stored clients for ``user_id`` matching ``names``, keyed by casefolded name."""
        keys = sorted({normalize_client_name(n) for n in names if normalize_client_name(n)})
        if not keys:
            return {}
        with self.engine.connect() as conn:
            rows: List[Any] = []
            for chunk in _chunks(keys):
                stmt = select(clients_table).where(
                    clients_table.c.user_id == int(user_id),
                    clients_table.c.name_key.in_(chunk),
                )
                rows.extend(conn.execute(stmt).all())
            clients = self._load(conn, rows)
        return {normalize_client_name(c.name): c for c in clients}

    def apply_plan(self, user_id: int, plan: ReconciliationPlan) -> List[str]:
        """Write a reconciliation plan atomically; returns the ids touched.

        Inserts get ``client_key(user_id, name)`` as id. Revenue rows for every
        client in the plan are deleted and re-inserted. Any error rolls back
        the whole batch.
        """
        touched: List[str] = []
        with self.engine.begin() as conn:
            ids_by_key: Dict[str, str] = {}
            for client in plan.inserts:
                client_id = client_key(user_id, client.name)
                row = _client_row(user_id, client)
                row["id"] = client_id
                conn.execute(insert(clients_table).values(**row))
                ids_by_key[normalize_client_name(client.name)] = client_id

            for client in plan.updates:
                if not client.id:
                    raise ValueError(f"Update for client {client.name!r} has no id")
                row = _client_row(user_id, client)
                row.pop("id")
                result = conn.execute(
                    update(clients_table)
                    .where(clients_table.c.id == client.id, clients_table.c.user_id == int(user_id))
                    .values(**row)
                )
                if result.rowcount != 1:
                    raise ValueError(f"Client {client.id} not found for user {user_id}")
                ids_by_key[normalize_client_name(client.name)] = client.id

            for key, revenue in plan.revenue_rows.items():
                client_id = ids_by_key.get(key)
                if client_id is None:
                    raise ValueError(f"Revenue rows for unknown client {key!r}")
                conn.execute(delete(client_revenues_table).where(client_revenues_table.c.client_id == client_id))
                rows = [
                    {"client_id": client_id, "year": int(year), "amount": float(amount)}
                    for year, amount in sorted(revenue.items())
                ]
                if rows:
                    conn.execute(insert(client_revenues_table), rows)
            touched = list(ids_by_key.values())

        logger.info(
            "Applied plan for user %s: %d inserted, %d updated",
            user_id,
            len(plan.inserts),
            len(plan.updates),
        )
        return touched

    def list_clients(self, user_id: int) -> List[Client]:
        with self.engine.connect() as conn:
            stmt = (
                select(clients_table)
                .where(clients_table.c.user_id == int(user_id))
                .order_by(clients_table.c.name_key)
            )
            rows = conn.execute(stmt).all()
            return self._load(conn, rows)

    def get_client(self, user_id: int, client_id: str) -> Optional[Client]:
        with self.engine.connect() as conn:
            stmt = select(clients_table).where(
                clients_table.c.id == client_id,
                clients_table.c.user_id == int(user_id),
            )
            row = conn.execute(stmt).first()
            if row is None:
                return None
            return self._load(conn, [row])[0]

    def save_enhancements(self, user_id: int, client: Client) -> Client:
        """Persist the enhancement fields and ``touched_fields`` of an existing client."""
        if not client.id:
            raise ValueError(f"Client {client.name!r} has no id; ingest it first")
        values = _enhancement_values(client)
        values["touched_fields"] = json.dumps(sorted(client.touched_fields))
        values["updated_at"] = _now()
        with self.engine.begin() as conn:
            result = conn.execute(
                update(clients_table)
                .where(clients_table.c.id == client.id, clients_table.c.user_id == int(user_id))
                .values(**values)
            )
            if result.rowcount != 1:
                raise ValueError(f"Client {client.id} not found for user {user_id}")
        return client

    def delete_client(self, user_id: int, client_id: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(
                delete(clients_table).where(
                    clients_table.c.id == client_id,
                    clients_table.c.user_id == int(user_id),
                )
            )
            if result.rowcount == 0:
                return False
            conn.execute(delete(client_revenues_table).where(client_revenues_table.c.client_id == client_id))
        logger.info("Deleted client %s for user %s", client_id, user_id)
        return True
