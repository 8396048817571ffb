from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Sequence

from grportfolio.utils.logger import get_logger
from grportfolio.utils.normalize import normalize_client_name
from grportfolio.utils.types import Client, ENHANCEMENT_DEFAULTS, is_default_value

logger = get_logger(__name__)

# Fields the CSV owns outright; every re-import overwrites them
CSV_AUTHORITATIVE_FIELDS = ("name", "contract_period", "status", "revenue")


@dataclass
class ReconciliationPlan:
    """Resolved upsert for one ingested batch.

    ``revenue_rows`` holds the full replacement revenue per client, keyed by the
    matching (casefolded) name; the store deletes and re-inserts them.
    """

    inserts: List[Client] = field(default_factory=list)
    updates: List[Client] = field(default_factory=list)
    revenue_rows: Dict[str, Dict[int, float]] = field(default_factory=dict)
    preserved: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def clients(self) -> List[Client]:
        return [*self.updates, *self.inserts]

    @property
    def names(self) -> List[str]:
        return [c.name for c in self.clients]

    def counts(self) -> Dict[str, int]:
        return {
            "inserted": len(self.inserts),
            "updated": len(self.updates),
            "total": len(self.inserts) + len(self.updates),
        }


def merge_enhancements(existing: Client, incoming: Client) -> tuple[Dict[str, object], List[str]]:
    """Pick each enhancement field from the stored record or the incoming row.

    The stored value wins when the user touched it explicitly or when it has
    moved away from its system default. Otherwise the incoming value applies.
    Returns the resolved values and the names of preserved fields.
    """
    resolved: Dict[str, object] = {}
    preserved: List[str] = []
    for name in ENHANCEMENT_DEFAULTS:
        current = getattr(existing, name)
        if name in existing.touched_fields or not is_default_value(name, current):
            resolved[name] = copy.deepcopy(current)
            preserved.append(name)
        else:
            resolved[name] = copy.deepcopy(getattr(incoming, name))
    return resolved, preserved


def reconcile(parsed: Sequence[Client], existing: Mapping[str, Client]) -> ReconciliationPlan:
    """Merge freshly parsed CSV clients against the stored ones.

    ``existing`` maps the casefolded client name to the stored record. Name,
    contract period, status and revenue always come from the CSV. Revenue is
    replaced wholesale, not merged by year.
    """
    by_name: Dict[str, Client] = {}
    for client in parsed:
        key = normalize_client_name(client.name)
        if not key:
            continue
        if key in by_name:
            logger.warning("Client %r appears more than once in the batch; keeping the last row", client.name)
        by_name[key] = client

    plan = ReconciliationPlan()
    for key, incoming in by_name.items():
        stored = existing.get(key)
        plan.revenue_rows[key] = dict(incoming.revenue)
        if stored is None:
            plan.inserts.append(incoming.without_derived())
            continue

        resolved, preserved = merge_enhancements(stored, incoming)
        csv_values = {name: copy.deepcopy(getattr(incoming, name)) for name in CSV_AUTHORITATIVE_FIELDS}
        merged = replace(stored.without_derived(), **csv_values, **resolved)
        plan.updates.append(merged)
        if preserved:
            plan.preserved[key] = preserved

    logger.info(
        "Reconciled %d rows: %d inserts, %d updates",
        len(by_name),
        len(plan.inserts),
        len(plan.updates),
    )
    return plan
