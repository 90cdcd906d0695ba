from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


ROUTE_PATTERN = re.compile(
    r"^/animals/(?P<animal_id>[^/]+)/transactions"
    r"(?:/(?:(?P<new>new)|(?P<transaction_id>[^/]+)/edit))?/?$"
)


@dataclass(frozen=True)
class Route:
    name: str  # "transactions", "new" or "edit"
    animal_id: str
    transaction_id: Optional[str] = None


def transactions_path(animal_id: str) -> str:
    return f"/animals/{animal_id}/transactions"


def new_transaction_path(animal_id: str) -> str:
    return f"/animals/{animal_id}/transactions/new"


def edit_transaction_path(animal_id: str, transaction_id: str) -> str:
    return f"/animals/{animal_id}/transactions/{transaction_id}/edit"


def parse_route(path: Optional[str]) -> Optional[Route]:
    match = ROUTE_PATTERN.match(path or "")
    if not match:
        return None
    if match.group("new"):
        return Route("new", match.group("animal_id"))
    if match.group("transaction_id"):
        return Route("edit", match.group("animal_id"), match.group("transaction_id"))
    return Route("transactions", match.group("animal_id"))
