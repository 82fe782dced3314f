"""Goal-contract ledger used by the contract route handlers.

A contract records a user's commitment: a goal, a deadline, and the address
any deposit should be returned to. This module only tracks the lifecycle
(`active` → `completed` | `cancelled` | `failed`). Deposits, key material and
transfers belong to the escrow subsystem and are not handled here.

Persistence:
    Contracts are kept in memory. When a path is given, the full ledger is
    mirrored to a JSON file after every change and reloaded on start.
"""

import asyncio
import json
import logging
import os
import re
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum


logger = logging.getLogger(__name__)

# Base58 alphabet (no 0, O, I, l), 32 to 44 characters.
RETURN_ADDRESS_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


class ContractStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class Contract:
    id: str
    user_id: str
    goal: str
    deadline: datetime
    return_address: str
    status: ContractStatus
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
    amount: float | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "goal": self.goal,
            "deadline": self.deadline.isoformat(),
            "returnAddress": self.return_address,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "amount": self.amount,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Contract":
        completed_at = data.get("completedAt")
        return cls(
            id=data["id"],
            user_id=data["userId"],
            goal=data["goal"],
            deadline=parse_datetime(data["deadline"]),
            return_address=data["returnAddress"],
            status=ContractStatus(data["status"]),
            created_at=parse_datetime(data["createdAt"]),
            updated_at=parse_datetime(data["updatedAt"]),
            completed_at=parse_datetime(completed_at) if completed_at else None,
            amount=data.get("amount"),
        )


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 date or datetime; naive values are taken as UTC.

    Raises:
        ValueError: For unparseable input.
    """
    parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_return_address(address: str) -> bool:
    return bool(address) and bool(RETURN_ADDRESS_PATTERN.match(address))


def validate_deadline(deadline: datetime, now: datetime | None = None) -> bool:
    return deadline > (now or datetime.now(timezone.utc))


class ContractLedger:

    def __init__(self, path: str | None = None):
        self.path = path or None
        self._lock = threading.Lock()
        self._contracts: dict[str, Contract] = self._load()

    def _load(self) -> dict[str, Contract]:
        if not self.path or not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        contracts = {}
        for item in raw:
            try:
                contract = Contract.from_dict(item)
            except (KeyError, ValueError):
                logger.warning("Skipping malformed contract record in %s", self.path)
                continue
            contracts[contract.id] = contract
        return contracts

    def _persist(self, contracts: dict[str, Contract]) -> None:
        if not self.path:
            return
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump([c.to_dict() for c in contracts.values()], f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def _create_sync(self, user_id, goal, deadline, return_address, now) -> Contract:
        now = now or datetime.now(timezone.utc)
        contract = Contract(
            id=uuid.uuid4().hex[:12],
            user_id=user_id,
            goal=goal,
            deadline=deadline,
            return_address=return_address,
            status=ContractStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            contracts = dict(self._contracts)
            contracts[contract.id] = contract
            self._persist(contracts)
            self._contracts = contracts
        return contract

    def _update_status_sync(self, contract_id, status) -> Contract:
        with self._lock:
            current = self._contracts.get(contract_id)
            if current is None:
                raise KeyError(contract_id)
            now = datetime.now(timezone.utc)
            updated = replace(
                current,
                status=status,
                updated_at=now,
                completed_at=now if status == ContractStatus.COMPLETED else current.completed_at,
            )
            contracts = dict(self._contracts)
            contracts[contract_id] = updated
            self._persist(contracts)
            self._contracts = contracts
        return updated

    async def create(
        self,
        user_id: str,
        goal: str,
        deadline: datetime,
        return_address: str,
        now: datetime | None = None,
    ) -> Contract:
        return await asyncio.to_thread(
            self._create_sync, user_id, goal, deadline, return_address, now
        )

    async def get_user_contract(self, contract_id: str, user_id: str) -> Contract | None:
        """Return the contract only when it belongs to `user_id`."""
        contract = self._contracts.get(contract_id)
        if contract is None or contract.user_id != user_id:
            return None
        return contract

    async def active_for_user(self, user_id: str) -> list[Contract]:
        return [
            c for c in self._contracts.values()
            if c.user_id == user_id and c.status == ContractStatus.ACTIVE
        ]

    async def update_status(self, contract_id: str, status: ContractStatus) -> Contract:
        return await asyncio.to_thread(self._update_status_sync, contract_id, status)
